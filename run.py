"""Run sentinel from a source checkout."""

from sentinel.main import main

if __name__ == "__main__":
    main(prog_name="sentinel")
