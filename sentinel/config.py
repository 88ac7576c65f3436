"""
Configuration for sentinel.

Loads settings from environment variables (and a .env file, which never
overrides the real environment). The Telegram bot token and chat id are
required; everything else has a sensible default.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError

load_dotenv()

DEFAULT_API_BASE = "https://api.telegram.org"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Sentinel configuration."""

    # Telegram
    bot_token: str
    chat_id: str
    api_base: str = DEFAULT_API_BASE
    request_timeout: float = 10.0

    # Execution
    shell: str = "bash"
    tail_max_bytes: int = 1500

    # Logging
    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    log_max_bytes: int = 10 * 1024 * 1024  # 10MB
    log_backup_count: int = 5

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "Config":
        """Build a Config from environment variables.

        Raises ConfigError naming every missing or malformed variable.
        """
        if environ is None:
            environ = os.environ

        problems = []

        def required(key: str) -> str:
            value = environ.get(key, "").strip()
            if not value:
                problems.append(f"{key} is not set")
            return value

        def number(key: str, default, cast):
            raw = environ.get(key, "").strip()
            if not raw:
                return default
            try:
                value = cast(raw)
            except ValueError:
                problems.append(f"{key} must be a number, got {raw!r}")
                return default
            if value < 0:
                problems.append(f"{key} must not be negative, got {raw!r}")
                return default
            return value

        bot_token = required("TG_BOT_TOKEN")
        chat_id = required("TG_CHAT_ID")
        request_timeout = number("SENTINEL_REQUEST_TIMEOUT", cls.request_timeout, float)
        tail_max_bytes = number("SENTINEL_TAIL_BYTES", cls.tail_max_bytes, int)
        log_max_bytes = number("LOG_MAX_BYTES", cls.log_max_bytes, int)
        log_backup_count = number("LOG_BACKUP_COUNT", cls.log_backup_count, int)

        log_level = environ.get("SENTINEL_LOG_LEVEL", "").strip().upper() or cls.log_level
        if log_level not in LOG_LEVELS:
            problems.append(f"SENTINEL_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        if problems:
            raise ConfigError("Invalid configuration: " + "; ".join(problems))

        log_file = environ.get("SENTINEL_LOG_FILE", "").strip()

        return cls(
            bot_token=bot_token,
            chat_id=chat_id,
            api_base=environ.get("TG_API_BASE", "").strip().rstrip("/") or DEFAULT_API_BASE,
            request_timeout=request_timeout,
            shell=environ.get("SENTINEL_SHELL", "").strip() or cls.shell,
            tail_max_bytes=tail_max_bytes,
            log_level=log_level,
            log_file=Path(log_file).expanduser() if log_file else None,
            log_max_bytes=log_max_bytes,
            log_backup_count=log_backup_count,
        )


def load_config() -> Config:
    """Load the configuration for this invocation."""
    return Config.from_env()
