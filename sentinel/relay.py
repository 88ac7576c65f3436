"""
Stream relays for child process output.

A relay drains one byte stream to end-of-stream, optionally copying each
chunk to a live sink as it arrives, and keeps the full content in memory.
RelayJob runs a relay in a background thread and records its outcome so the
process runner can drain stdout and stderr at the same time.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import BinaryIO, Optional

from .errors import RelayError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096


def relay(source: BinaryIO, sink: Optional[BinaryIO], tee: bool) -> bytes:
    """Read source until end-of-stream and return everything read.

    With tee set, every chunk is written to sink and flushed right away.
    OSError from either side propagates and the partial data is dropped.
    """
    # read1 returns as soon as a pipe has any data instead of filling the chunk
    read = getattr(source, "read1", None) or source.read
    buffer = bytearray()

    while True:
        chunk = read(CHUNK_SIZE)
        if not chunk:
            break
        if tee:
            sink.write(chunk)
            sink.flush()
        buffer += chunk

    return bytes(buffer)


class RelayStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RelayJob:
    """A relay running in its own thread."""

    name: str
    source: BinaryIO
    sink: Optional[BinaryIO] = None
    tee: bool = True
    status: RelayStatus = RelayStatus.PENDING
    data: Optional[bytes] = None
    error: Optional[RelayError] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    _thread: Optional[threading.Thread] = field(default=None, init=False, repr=False)

    def start(self) -> "RelayJob":
        """Start draining the source in a background thread."""
        if self._thread is not None:
            raise RuntimeError(f"Relay {self.name} already started")

        self._thread = threading.Thread(
            target=self._run, name=f"relay-{self.name}", daemon=True
        )
        self.status = RelayStatus.RUNNING
        self.started_at = datetime.now()
        self._thread.start()
        return self

    def wait(self):
        """Block until the relay has finished, successfully or not."""
        if self._thread is not None:
            self._thread.join()

    def result(self) -> bytes:
        """Return the relayed bytes, or raise the relay's error."""
        self.wait()
        if self.error is not None:
            raise self.error
        return self.data

    def _run(self):
        try:
            self.data = relay(self.source, self.sink, self.tee)
            self.status = RelayStatus.COMPLETED
            logger.debug(f"Relay {self.name} finished with {len(self.data)} bytes")

        except Exception as e:
            self.error = RelayError(f"Failed to relay {self.name}: {e}")
            self.status = RelayStatus.FAILED
            logger.error(f"Relay {self.name} failed: {e}")

        finally:
            self.completed_at = datetime.now()
            # A closed read end turns further child writes into EPIPE instead of a full pipe
            try:
                self.source.close()
            except OSError as e:
                logger.warning(f"Failed to close {self.name} stream: {e}")
