"""
Telegram notifications for sentinel.

TelegramClient posts a single message to the Bot API. Notifier queues
messages and delivers them one at a time, in order, from a background
thread so the supervised command never waits on the network.
"""

import logging
import queue
import socket
import threading
from datetime import datetime

import httpx

from .config import Config
from .errors import DeliveryError
from .formatting import format_message

logger = logging.getLogger(__name__)

SEND_MESSAGE_PATH = "/bot{token}/sendMessage"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def telegram_payload(chat_id: str, body: str) -> dict:
    """Build the sendMessage JSON body."""
    return {
        "chat_id": chat_id,
        "text": body,
        "disable_web_page_preview": True,
    }


class TelegramClient:
    """Sends messages to one Telegram chat."""

    def __init__(self, config: Config, transport: httpx.BaseTransport = None):
        self._token = config.bot_token
        self._chat_id = config.chat_id
        self._host = socket.gethostname()
        self._client = httpx.Client(
            base_url=config.api_base,
            timeout=config.request_timeout,
            transport=transport,
        )

    def send(self, text: str):
        """Deliver text, stamped with the current time and host.

        Raises DeliveryError on connection failures, timeouts and non-2xx
        responses.
        """
        timestamp = datetime.now().strftime(TIMESTAMP_FORMAT)
        body = format_message(timestamp, self._host, text)
        # Lone surrogates (undecodable argv bytes) cannot be sent as JSON
        body = body.encode("utf-8", "replace").decode("utf-8")

        try:
            response = self._client.post(
                SEND_MESSAGE_PATH.format(token=self._token),
                json=telegram_payload(self._chat_id, body),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DeliveryError(
                f"Telegram API returned {e.response.status_code}: {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise DeliveryError(f"Could not reach Telegram API: {e}") from e

    def close(self):
        self._client.close()


_STOP = object()


class Notifier:
    """Delivers queued messages in order from a single worker thread.

    Delivery is best-effort: failures are logged and the next message is
    tried. shutdown() returns once everything queued before it has been
    attempted.
    """

    def __init__(self, client: TelegramClient):
        self._client = client
        self._queue: queue.Queue = queue.Queue()
        self._thread = threading.Thread(
            target=self._worker, name="notifier", daemon=True
        )
        self._closed = False
        self.delivered = 0
        self.failed = 0

    def start(self) -> "Notifier":
        self._thread.start()
        logger.debug("Notifier started")
        return self

    def send(self, text: str):
        """Queue text for delivery without waiting for it."""
        if self._closed:
            raise RuntimeError("Notifier has been shut down")
        self._queue.put(text)

    def shutdown(self):
        """Stop accepting messages and wait for the queue to drain."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        if self._thread.is_alive():
            self._thread.join()
        logger.debug(
            f"Notifier stopped ({self.delivered} delivered, {self.failed} failed)"
        )

    def _worker(self):
        while True:
            message = self._queue.get()
            if message is _STOP:
                break

            try:
                self._client.send(message)
                self.delivered += 1
            except DeliveryError as e:
                self.failed += 1
                logger.error(f"Failed to send telegram message: {e}")
            except Exception as e:
                self.failed += 1
                logger.exception(f"Failed to send telegram message: {e}")
