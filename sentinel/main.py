"""
Sentinel command-line interface.

Parses the command to supervise, loads configuration, sets up logging and
hands off to the lifecycle. Exits with the supervised command's own exit
code, or with a fixed code when it could not run or was killed.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

import click

from . import __version__
from .config import Config, load_config
from .errors import ConfigError, UsageError
from .lifecycle import supervise, validate_command
from .notifier import Notifier, TelegramClient
from .process import ProcessRunner

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    # Everything after the first command word belongs to the command
    "allow_interspersed_args": False,
    "ignore_unknown_options": True,
}


def configure_logging(config: Config):
    """Configure the root logger for this invocation."""
    log_formatter = logging.Formatter(LOG_FORMAT)

    # Console handler (stderr, so stdout stays the command's)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(log_formatter)
    handlers = [console_handler]

    # Rotating file handler (optional)
    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(log_formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=config.log_level, handlers=handlers, force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class SentinelCommand(click.Command):
    """Command that rejects a bare `--` with no command after it."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if args == ["--"]:
            raise click.UsageError("Missing command after --.", ctx=ctx)
        return super().parse_args(ctx, args)


@click.command("sentinel", cls=SentinelCommand, context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "-V", "--version", prog_name="sentinel")
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def main(ctx: click.Context, command: tuple[str, ...]):
    """Run COMMAND via bash -c and send Telegram notifications.

    Needs TG_BOT_TOKEN and TG_CHAT_ID in the environment (or a .env file).

    \b
    Examples:
      sentinel -- "echo hello"
      sentinel -- ls -la
      sentinel -- --help   # runs a command named "--help"
    """
    command_line = " ".join(command)

    try:
        validate_command(command_line)
        config = load_config()
    except (UsageError, ConfigError) as e:
        raise click.UsageError(str(e), ctx=ctx) from e

    configure_logging(config)

    client = TelegramClient(config)
    notifier = Notifier(client).start()
    runner = ProcessRunner(shell=config.shell)

    try:
        report = supervise(command_line, runner, notifier, tail_max=config.tail_max_bytes)
    finally:
        client.close()

    if report.error:
        click.echo(f"sentinel: {report.error}", err=True)

    logger.debug(f"Exiting with {report.exit_code} ({report.outcome.value})")
    ctx.exit(report.exit_code)


if __name__ == "__main__":
    main(prog_name="sentinel")
