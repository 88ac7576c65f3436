"""
Entry point for running sentinel via `python -m sentinel`.
"""

from .main import main

if __name__ == "__main__":
    main(prog_name="sentinel")
