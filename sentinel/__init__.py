"""
Sentinel - run a shell command and report its lifecycle to Telegram.

Mirrors the command's stdout/stderr to the terminal while capturing it, and
sends "started" and "finished" notifications through a background worker so
slow or failing deliveries never affect the command itself.
"""

__version__ = "0.1.0"
