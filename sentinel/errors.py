"""
Error types raised by sentinel.

Usage and configuration errors stop the run before any command starts.
Spawn and relay errors end a running command and are reported through a
notification. Delivery errors never leave the notifier worker.
"""


class SentinelError(Exception):
    """Base class for sentinel errors."""


class UsageError(SentinelError):
    """Bad or missing command-line arguments."""


class ConfigError(SentinelError):
    """Required configuration is missing or malformed."""


class SpawnError(SentinelError):
    """The child process could not be created."""


class RelayError(SentinelError, OSError):
    """Reading a child stream or writing it to the terminal failed."""


class DeliveryError(SentinelError):
    """A notification could not be delivered."""
