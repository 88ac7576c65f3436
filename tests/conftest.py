"""Shared fixtures for sentinel tests."""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sentinel.config import Config  # noqa: E402
from sentinel.errors import DeliveryError  # noqa: E402


class RecordingClient:
    """Stands in for TelegramClient and remembers what it was asked to send."""

    def __init__(self, fail_on=()):
        self.sent = []
        self.fail_on = set(fail_on)

    def send(self, text):
        if text in self.fail_on:
            raise DeliveryError(f"refused {text!r}")
        self.sent.append(text)

    def close(self):
        pass


@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def config() -> Config:
    return Config(bot_token="TEST_TOKEN", chat_id="123", api_base="http://telegram.test")


@pytest.fixture
def recording_client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable sentinel reads."""
    for key in (
        "TG_BOT_TOKEN",
        "TG_CHAT_ID",
        "TG_API_BASE",
        "SENTINEL_REQUEST_TIMEOUT",
        "SENTINEL_SHELL",
        "SENTINEL_TAIL_BYTES",
        "SENTINEL_LOG_LEVEL",
        "SENTINEL_LOG_FILE",
        "LOG_MAX_BYTES",
        "LOG_BACKUP_COUNT",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch
