import json
import re
import threading

import httpx
import pytest

from conftest import RecordingClient
from sentinel.config import Config
from sentinel.errors import DeliveryError
from sentinel.notifier import Notifier, TelegramClient, telegram_payload


def test_telegram_payload_is_expected_shape():
    payload = telegram_payload("123", "body")
    assert payload["chat_id"] == "123"
    assert payload["text"] == "body"
    assert payload["disable_web_page_preview"] is True


def test_client_posts_send_message(config):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    client = TelegramClient(config, transport=httpx.MockTransport(handler))
    client.send("hello")
    client.close()

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert request.url.host == "telegram.test"
    assert request.url.path == "/botTEST_TOKEN/sendMessage"

    body = json.loads(request.content)
    assert body["chat_id"] == "123"
    assert body["disable_web_page_preview"] is True
    assert re.match(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[[^\]]*\]\nhello$", body["text"])


def test_client_raises_delivery_error_on_http_error(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"ok": False, "description": "Unauthorized"})

    client = TelegramClient(config, transport=httpx.MockTransport(handler))
    with pytest.raises(DeliveryError) as excinfo:
        client.send("hello")
    assert "401" in str(excinfo.value)


def test_client_raises_delivery_error_on_connection_error(config):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = TelegramClient(config, transport=httpx.MockTransport(handler))
    with pytest.raises(DeliveryError):
        client.send("hello")


def test_notifier_delivers_in_order(recording_client):
    notifier = Notifier(recording_client).start()
    messages = [f"message {i}" for i in range(50)]
    for message in messages:
        notifier.send(message)
    notifier.shutdown()

    assert recording_client.sent == messages
    assert notifier.delivered == 50
    assert notifier.failed == 0


def test_notifier_keeps_going_after_failure():
    client = RecordingClient(fail_on={"first"})
    notifier = Notifier(client).start()
    notifier.send("first")
    notifier.send("second")
    notifier.shutdown()

    assert client.sent == ["second"]
    assert notifier.failed == 1
    assert notifier.delivered == 1


def test_notifier_send_does_not_wait_for_delivery():
    release = threading.Event()
    sent = []

    class SlowClient:
        def send(self, text):
            release.wait(timeout=10)
            sent.append(text)

    notifier = Notifier(SlowClient()).start()
    notifier.send("one")
    notifier.send("two")
    assert sent == []

    release.set()
    notifier.shutdown()
    assert sent == ["one", "two"]


def test_notifier_rejects_send_after_shutdown(recording_client):
    notifier = Notifier(recording_client).start()
    notifier.shutdown()
    with pytest.raises(RuntimeError):
        notifier.send("too late")


def test_notifier_shutdown_twice_is_harmless(recording_client):
    notifier = Notifier(recording_client).start()
    notifier.send("only")
    notifier.shutdown()
    notifier.shutdown()
    assert recording_client.sent == ["only"]


def test_notifier_survives_unreachable_endpoint():
    config = Config(
        bot_token="TEST_TOKEN",
        chat_id="123",
        api_base="http://127.0.0.1:1",
        request_timeout=2.0,
    )
    client = TelegramClient(config)
    notifier = Notifier(client).start()
    notifier.send("Started\ntrue")
    notifier.send("Finished")
    notifier.shutdown()
    client.close()

    assert notifier.failed == 2
    assert notifier.delivered == 0


def test_notifier_keeps_going_after_unexpected_client_error():
    class ExplodingOnceClient(RecordingClient):
        def send(self, text):
            if text == "first":
                raise UnicodeEncodeError("utf-8", text, 0, 1, "surrogates not allowed")
            super().send(text)

    client = ExplodingOnceClient()
    notifier = Notifier(client).start()
    notifier.send("first")
    notifier.send("second")
    notifier.shutdown()

    assert client.sent == ["second"]
    assert notifier.failed == 1
    assert notifier.delivered == 1


def test_undecodable_command_text_is_still_delivered(config):
    texts = []

    def handler(request: httpx.Request) -> httpx.Response:
        texts.append(json.loads(request.content)["text"])
        return httpx.Response(200, json={"ok": True})

    client = TelegramClient(config, transport=httpx.MockTransport(handler))
    notifier = Notifier(client).start()
    notifier.send("Started\necho \udcff")
    notifier.send("Finished")
    notifier.shutdown()
    client.close()

    assert notifier.delivered == 2
    assert notifier.failed == 0
    assert texts[0].endswith("\nStarted\necho ?")
    assert texts[1].endswith("\nFinished")
