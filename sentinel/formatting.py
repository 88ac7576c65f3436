"""
Text helpers for notifications.

Turns captured output into display-safe tails and builds the message texts
sent for each stage of a run.
"""

import signal
from typing import Optional

TRUNCATION_MARKER = "… (truncated, showing last {max_bytes} bytes)\n"


def decode_lossy(data: bytes) -> str:
    """Decode bytes as UTF-8, replacing invalid sequences."""
    return data.decode("utf-8", errors="replace")


def tail_bytes(data: bytes, max_bytes: int) -> str:
    """Return the last max_bytes of data as text.

    Buffers longer than max_bytes are cut to their tail and prefixed with a
    marker saying how much is shown. The cut may split a multi-byte
    character; the broken sequence decodes to a replacement character.
    """
    if max_bytes < 0:
        raise ValueError(f"max_bytes must not be negative, got {max_bytes}")

    if len(data) <= max_bytes:
        return decode_lossy(data)

    tail = data[len(data) - max_bytes:]
    return TRUNCATION_MARKER.format(max_bytes=max_bytes) + decode_lossy(tail)


def format_message(timestamp: str, host: str, text: str) -> str:
    """Prefix a message with its timestamp and host on their own line."""
    return f"[{timestamp}] [{host}]\n{text}"


def started_message(command: str) -> str:
    return f"Started\n{command}"


def execution_error_message(error: Exception) -> str:
    return f"Failed to execute command: {error}"


def _streams(stdout: bytes, stderr: bytes, max_bytes: int) -> str:
    return (
        f"Stdout:\n{tail_bytes(stdout, max_bytes)}\n"
        f"Stderr:\n{tail_bytes(stderr, max_bytes)}"
    )


def finished_message(stdout: bytes, stderr: bytes, max_bytes: int) -> str:
    return "Finished successfully with exit code 0.\n" + _streams(stdout, stderr, max_bytes)


def failed_message(exit_code: int, stdout: bytes, stderr: bytes, max_bytes: int) -> str:
    return f"Failed with exit code: {exit_code}.\n" + _streams(stdout, stderr, max_bytes)


def signaled_message(
    signum: Optional[int], stdout: bytes, stderr: bytes, max_bytes: int
) -> str:
    headline = "Process terminated by signal."
    name = signal_name(signum)
    if name:
        headline = f"Process terminated by signal ({name})."
    return f"{headline}\n" + _streams(stdout, stderr, max_bytes)


def signal_name(signum: Optional[int]) -> Optional[str]:
    """Return the symbolic name of a signal number, if it has one."""
    if signum is None:
        return None
    try:
        return signal.Signals(signum).name
    except ValueError:
        return None
