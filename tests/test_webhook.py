import base64
import hashlib
import hmac
import json
from dataclasses import replace

import pytest
import requests
from fastapi.testclient import TestClient

from salesbot import app as app_module
from salesbot.assistant import SalesAssistant
from salesbot.catalog import Product
from salesbot.config import load_settings
from salesbot.errors import LineApiError
from salesbot.line_client import LineClient, verify_signature
from salesbot.models import UserProfile

from .conftest import fake_profile

SECRET = "test-channel-secret"


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = json.dumps(self._payload)

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, status_code=200, payload=None, error=None):
        self.status_code = status_code
        self.payload = payload
        self.error = error
        self.posts = []
        self.gets = []

    def post(self, url, json=None, headers=None, timeout=None):
        if self.error:
            raise self.error
        self.posts.append({"url": url, "json": json, "headers": headers})
        return FakeResponse(self.status_code)

    def get(self, url, headers=None, timeout=None):
        if self.error:
            raise self.error
        self.gets.append(url)
        return FakeResponse(self.status_code, self.payload)


def sign(body: bytes, secret: str = SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


def text_event(text, user_id="U1", token="tok-1"):
    return {
        "type": "message",
        "replyToken": token,
        "source": {"type": "user", "userId": user_id},
        "message": {"id": "m1", "type": "text", "text": text},
    }


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv("CHANNEL_SECRET", SECRET)
    monkeypatch.setenv("CHANNEL_ACCESS_TOKEN", "token-abc")
    return load_settings()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(monkeypatch, settings, session, sheets):
    line_client = LineClient(settings, session=session)
    assistant = SalesAssistant(catalog=sheets, ledger=sheets, profile_lookup=fake_profile)
    monkeypatch.setattr(app_module, "line_client", line_client)
    monkeypatch.setattr(app_module, "assistant", assistant)
    return TestClient(app_module.app)


def post_events(client, events, signature=None):
    body = json.dumps({"destination": "Ubot", "events": events}).encode("utf-8")
    headers = {"Content-Type": "application/json", "X-Line-Signature": signature or sign(body)}
    return client.post("/webhook", content=body, headers=headers)


def test_index(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "running" in response.text


def test_webhook_rejects_bad_signature(client, session):
    response = post_events(client, [text_event("查價 a123")], signature="bogus")
    assert response.status_code == 401
    assert session.posts == []


def test_webhook_rejects_malformed_payload(client):
    body = b'{"events": "nope"}'
    response = client.post("/webhook", content=body, headers={"X-Line-Signature": sign(body)})
    assert response.status_code == 400


def test_webhook_replies_to_text_events(client, session):
    events = [
        text_event("查價 a123", token="tok-1"),
        {"type": "follow", "replyToken": "tok-2", "source": {"type": "user", "userId": "U2"}},
        {**text_event("x", token="tok-3"), "message": {"id": "m3", "type": "sticker"}},
    ]
    response = post_events(client, events)
    assert response.status_code == 200
    assert len(session.posts) == 1
    sent = session.posts[0]
    assert sent["url"].endswith("/message/reply")
    assert sent["headers"]["Authorization"] == "Bearer token-abc"
    assert sent["json"] == {
        "replyToken": "tok-1",
        "messages": [{"type": "text", "text": "《Fish Tank Kit》\n定價：1200 元"}],
    }


def test_webhook_survives_reply_failure(monkeypatch, settings, sheets):
    failing = LineClient(settings, session=FakeSession(status_code=500))
    monkeypatch.setattr(app_module, "line_client", failing)
    monkeypatch.setattr(
        app_module, "assistant", SalesAssistant(catalog=sheets, ledger=sheets, profile_lookup=fake_profile)
    )
    response = post_events(TestClient(app_module.app), [text_event("hello")])
    assert response.status_code == 200


def test_verify_signature():
    body = b'{"events":[]}'
    assert verify_signature(body, sign(body), SECRET)
    assert not verify_signature(body + b" ", sign(body), SECRET)
    assert not verify_signature(body, None, SECRET)
    assert not verify_signature(body, sign(body), "")


def test_reply_caps_message_count(settings):
    client = LineClient(replace(settings, reply_chunk_size=10), session=FakeSession())
    messages = client.build_messages("a" * 100)
    assert len(messages) == 5


def test_reply_transport_error(settings):
    client = LineClient(settings, session=FakeSession(error=requests.ConnectionError("down")))
    with pytest.raises(LineApiError):
        client.reply_text("tok", "hi")


def test_profile_lookup(settings):
    session = FakeSession(payload={"userId": "U1", "displayName": "小明", "language": "zh-TW"})
    profile = LineClient(settings, session=session).get_profile_safe("U1")
    assert profile == UserProfile(user_id="U1", display_name="小明")
    assert session.gets[0].endswith("/profile/U1")


def test_profile_lookup_falls_back(settings):
    client = LineClient(settings, session=FakeSession(status_code=404))
    assert client.get_profile_safe("U1") == UserProfile(user_id="U1", display_name="")
    assert client.get_profile_safe(None) == UserProfile(user_id="", display_name="")


def test_app_recent_cache_is_bounded_per_user_count():
    recent = app_module.recent_items
    cap = app_module.settings.recent_users_max
    assert recent._max_users == cap
    try:
        for i in range(cap + 5):
            recent.record(f"U{i}", Product(code="A1", name="Kit"))
        assert len(recent._items) == cap
    finally:
        for i in range(cap + 5):
            recent.clear(f"U{i}")
