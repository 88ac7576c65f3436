"""
Lifecycle of one supervised command.

Sends the "started" notification, runs the command, classifies how it ended,
sends exactly one terminal notification and picks the exit code for sentinel
itself. The notifier is always drained before returning.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import RelayError, SpawnError, UsageError
from .formatting import (
    execution_error_message,
    failed_message,
    finished_message,
    signal_name,
    signaled_message,
    started_message,
)
from .notifier import Notifier
from .process import ExecutionResult, ProcessRunner

logger = logging.getLogger(__name__)

EXIT_SPAWN_FAILED = 1
EXIT_USAGE = 2
EXIT_SIGNALED = 128

DEFAULT_TAIL_BYTES = 1500


class Outcome(Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SIGNALED = "signaled"
    SPAWN_FAILED = "spawn_failed"
    RELAY_FAILED = "relay_failed"


@dataclass(frozen=True)
class RunReport:
    """What happened, and what sentinel should exit with."""

    outcome: Outcome
    exit_code: int
    error: Optional[str] = None


def validate_command(command: str) -> str:
    """Reject an empty command before anything is started."""
    if not command or not command.strip():
        raise UsageError("Missing command.")
    return command


def classify(result: ExecutionResult) -> Outcome:
    if result.signaled:
        return Outcome.SIGNALED
    if result.exit_code == 0:
        return Outcome.COMPLETED
    return Outcome.FAILED


def terminal_message(result: ExecutionResult, tail_max: int) -> str:
    """Build the notification summarising a finished command."""
    stdout, stderr = result.stdout.data, result.stderr.data
    outcome = classify(result)
    if outcome is Outcome.COMPLETED:
        return finished_message(stdout, stderr, tail_max)
    if outcome is Outcome.FAILED:
        return failed_message(result.exit_code, stdout, stderr, tail_max)
    return signaled_message(result.signal, stdout, stderr, tail_max)


def supervise(
    command: str,
    runner: ProcessRunner,
    notifier: Notifier,
    tail_max: int = DEFAULT_TAIL_BYTES,
) -> RunReport:
    """Run command under runner, reporting start and end through notifier."""
    validate_command(command)

    try:
        notifier.send(started_message(command))

        try:
            result = runner.run(command)
        except SpawnError as e:
            logger.info(f"Failed to execute command: {e}")
            notifier.send(execution_error_message(e))
            return RunReport(Outcome.SPAWN_FAILED, EXIT_SPAWN_FAILED, str(e))
        except RelayError as e:
            logger.info(f"Failed to execute command: {e}")
            notifier.send(execution_error_message(e))
            return RunReport(Outcome.RELAY_FAILED, EXIT_SPAWN_FAILED, str(e))

        notifier.send(terminal_message(result, tail_max))
        return _report(result)

    finally:
        notifier.shutdown()


def _report(result: ExecutionResult) -> RunReport:
    outcome = classify(result)

    if outcome is Outcome.COMPLETED:
        logger.info("Command finished successfully with exit code 0")
        return RunReport(outcome, 0)

    if outcome is Outcome.FAILED:
        logger.info(f"Failed with exit code: {result.exit_code}")
        logger.debug(f"Stdout: {result.stdout.text()} Stderr: {result.stderr.text()}")
        return RunReport(outcome, result.exit_code)

    name = signal_name(result.signal) or "unknown signal"
    logger.info(f"Process terminated by signal ({name})")
    return RunReport(outcome, EXIT_SIGNALED, f"Command terminated by {name}")
