"""
Process runner for the supervised command.

Starts the command under a shell, drains its stdout and stderr concurrently
while mirroring them to the terminal, waits for it to exit, and returns the
exit disposition together with everything it printed.
"""

import logging
import signal
import subprocess
import sys
import threading
from dataclasses import dataclass
from typing import BinaryIO, Optional

from .errors import SpawnError
from .formatting import decode_lossy, tail_bytes
from .relay import RelayJob

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapturedOutput:
    """Everything a child wrote to one stream."""

    data: bytes = b""

    def __len__(self) -> int:
        return len(self.data)

    def text(self) -> str:
        return decode_lossy(self.data)

    def tail(self, max_bytes: int) -> str:
        return tail_bytes(self.data, max_bytes)


@dataclass(frozen=True)
class ExecutionResult:
    """How the child ended and what it printed.

    Exactly one of exit_code or signaled is set: a child either exits with a
    code or is killed by a signal.
    """

    exit_code: Optional[int]
    signaled: bool
    stdout: CapturedOutput
    stderr: CapturedOutput
    signal: Optional[int] = None

    def __post_init__(self):
        if (self.exit_code is not None) == self.signaled:
            raise ValueError(
                f"exit_code={self.exit_code!r} and signaled={self.signaled!r} are inconsistent"
            )

    @classmethod
    def from_returncode(
        cls, returncode: int, stdout: bytes, stderr: bytes
    ) -> "ExecutionResult":
        """Build a result from a subprocess return code (negative means signaled)."""
        if returncode < 0:
            return cls(
                exit_code=None,
                signaled=True,
                stdout=CapturedOutput(stdout),
                stderr=CapturedOutput(stderr),
                signal=-returncode,
            )
        return cls(
            exit_code=returncode,
            signaled=False,
            stdout=CapturedOutput(stdout),
            stderr=CapturedOutput(stderr),
        )

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ProcessRunner:
    """Runs one shell command with its output teed and captured."""

    def __init__(
        self,
        shell: str = "bash",
        stdout_sink: BinaryIO = None,
        stderr_sink: BinaryIO = None,
    ):
        self.shell = shell
        self._stdout_sink = stdout_sink
        self._stderr_sink = stderr_sink

    def run(self, command: str, tee: bool = True) -> ExecutionResult:
        """Run command to completion.

        Raises SpawnError if the shell cannot be started and RelayError if a
        stream could not be drained. A non-zero exit is a normal result.
        """
        try:
            # stdin is inherited so piped or interactive input reaches the child
            process = subprocess.Popen(
                [self.shell, "-c", command],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnError(f"Failed to run {self.shell} command '{command}': {e}") from e

        logger.debug(f"Started {self.shell} with PID {process.pid}: {command}")

        stdout_sink = self._sink("stdout")
        stderr_sink = self._sink("stderr")
        stdout_job = RelayJob(
            "stdout", process.stdout, stdout_sink, tee and stdout_sink is not None
        ).start()
        stderr_job = RelayJob(
            "stderr", process.stderr, stderr_sink, tee and stderr_sink is not None
        ).start()

        # Ctrl-C reaches the child through the process group; the parent keeps
        # waiting so a signaled child is still classified and reported
        previous_handler = self._ignore_sigint()
        try:
            returncode = process.wait()
        finally:
            self._restore_sigint(previous_handler)
            stdout_job.wait()
            stderr_job.wait()

        logger.info(f"Command exited with return code {returncode}")

        # Raises the first relay fault, stdout before stderr
        stdout = stdout_job.result()
        stderr = stderr_job.result()

        return ExecutionResult.from_returncode(returncode, stdout, stderr)

    def _ignore_sigint(self):
        """Ignore SIGINT in the parent, returning the handler to restore."""
        if threading.current_thread() is not threading.main_thread():
            return None
        return signal.signal(signal.SIGINT, signal.SIG_IGN)

    def _restore_sigint(self, handler):
        if handler is not None:
            signal.signal(signal.SIGINT, handler)

    def _sink(self, name: str) -> Optional[BinaryIO]:
        """Resolve the live sink for a stream at run time."""
        if name == "stdout":
            sink, stream = self._stdout_sink, sys.stdout
        else:
            sink, stream = self._stderr_sink, sys.stderr
        if sink is not None:
            return sink
        return getattr(stream, "buffer", None)
