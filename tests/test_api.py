from __future__ import annotations

import json

from fastapi.testclient import TestClient

from relay.coordinator import NOT_HEARD_MESSAGE


def test_healthz_reports_session_count(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "healthy"
    assert payload["ws_connections"] == 0
    assert payload["timestamp"]

    with client.websocket_connect("/relay"):
        assert client.get("/healthz").json()["ws_connections"] == 1

    assert client.get("/healthz").json()["ws_connections"] == 0


def test_relay_prompt_without_token_source_returns_placeholder(client):
    with client.websocket_connect("/relay") as ws:
        ws.send_text(json.dumps({"type": "prompt", "voicePrompt": "こんにちは"}))
        message = ws.receive_json()

    assert message["type"] == "text"
    assert message["last"] is True
    assert "こんにちは" in message["token"]


def test_relay_empty_prompt_returns_not_heard(client):
    with client.websocket_connect("/relay") as ws:
        ws.send_text(json.dumps({"type": "prompt", "voicePrompt": ""}))
        message = ws.receive_json()

    assert message == {"type": "text", "token": NOT_HEARD_MESSAGE, "last": True}


def test_relay_malformed_payload_keeps_connection_open(client):
    with client.websocket_connect("/relay") as ws:
        ws.send_text("{not json")
        ws.send_text(json.dumps(["not", "an", "object"]))
        ws.send_text(json.dumps({"type": "setup", "callSid": "CA1"}))
        ws.send_text(json.dumps({"type": "prompt", "voicePrompt": "まだ大丈夫？"}))
        message = ws.receive_json()

    assert message["last"] is True
    assert "まだ大丈夫？" in message["token"]


def test_relay_streams_model_reply_sentence_by_sentence(settings):
    from conftest import FakeLLM
    from main import create_app

    llm = FakeLLM(["はい。", "元気です！", "ありがとう"])
    app = create_app(settings, llm=llm)

    with TestClient(app) as client:
        with client.websocket_connect("/relay") as ws:
            ws.send_text(json.dumps({"type": "prompt", "voicePrompt": "お元気ですか"}))
            messages = [ws.receive_json() for _ in range(3)]

    assert messages == [
        {"type": "text", "token": "はい。"},
        {"type": "text", "token": "元気です！"},
        {"type": "text", "token": "ありがとう", "last": True},
    ]
    assert llm.calls[0][-1] == {"role": "user", "content": "お元気ですか"}


def test_relay_path_is_configurable():
    from conftest import make_settings
    from main import create_app

    app = create_app(make_settings(ws_path="conversation"))

    with TestClient(app) as client:
        with client.websocket_connect("/conversation") as ws:
            ws.send_text(json.dumps({"type": "prompt", "voicePrompt": "テスト"}))
            assert ws.receive_json()["last"] is True
