"""Integration tests for the /ws/chat WebSocket channel."""

import uuid
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from support_relay.main import app

pytestmark = pytest.mark.integration


@asynccontextmanager
async def _no_lifespan(_app):
    yield


@pytest.fixture
def client(installed_container, monkeypatch):
    # Startup would try to reach Postgres; the test container replaces it
    monkeypatch.setattr(app.router, "lifespan_context", _no_lifespan)
    with TestClient(app) as test_client:
        yield test_client


def _receive_until(ws, message_type: str, limit: int = 50) -> list[dict]:
    received = []
    for _ in range(limit):
        message = ws.receive_json()
        received.append(message)
        if message.get("type") == message_type:
            return received
    raise AssertionError(f"{message_type} not received; got {[m.get('type') for m in received]}")


class TestWebSocketChat:
    def test_send_message_streams_and_completes(self, client, store, provider):
        provider.default = ["You can return ", "items within ", "30 days."]

        with client.websocket_connect("/ws/chat") as ws:
            ws.send_json({"type": "sendMessage", "payload": {"content": "Return window?"}})
            received = _receive_until(ws, "streamComplete")

        chunks = [m["payload"] for m in received if m["type"] == "streamChunk"]
        assert chunks == ["You can return ", "items within ", "30 days."]
        complete = received[-1]["payload"]
        assert complete["content"] == "You can return items within 30 days."
        session_id = uuid.UUID(complete["sessionId"])
        assert store.roles(session_id) == ["user", "assistant"]
        assert store.sessions[session_id].meta == {"source": "ws"}

    def test_provider_failure(self, client, provider):
        provider.default = RuntimeError("401 API key not valid")

        with client.websocket_connect("/ws/chat") as ws:
            ws.send_json({"type": "sendMessage", "payload": {"content": "hi"}})
            error = ws.receive_json()
            complete = ws.receive_json()

        assert error["type"] == "error"
        assert error["payload"]["code"] == "PROVIDER_AUTH"
        assert complete["type"] == "streamComplete"
        assert complete["payload"]["error"] is True

    def test_typing_reaches_other_members_only(self, client):
        session_id = str(uuid.uuid4())

        with client.websocket_connect(f"/ws/chat?sessionId={session_id}") as first:
            with client.websocket_connect(f"/ws/chat?sessionId={session_id}") as second:
                assert first.receive_json() == {"type": "userOnline", "payload": {"sessionId": session_id}}

                first.send_json({"type": "typing", "payload": {"sessionId": session_id}})
                assert second.receive_json() == {
                    "type": "typing",
                    "payload": {"sessionId": session_id, "isTyping": True},
                }

                # The sender's next message is the pong, not its own typing event
                first.send_json({"type": "ping"})
                assert first.receive_json() == {"type": "pong"}

                second.send_json({"type": "stopTyping", "payload": {"sessionId": session_id}})
                assert first.receive_json()["payload"]["isTyping"] is False

    def test_invalid_json_keeps_connection_open(self, client):
        with client.websocket_connect("/ws/chat") as ws:
            ws.send_text("{not json")
            assert ws.receive_json()["payload"]["code"] == "INVALID_JSON"

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_binary_frame_keeps_connection_open(self, client):
        with client.websocket_connect("/ws/chat") as ws:
            ws.send_bytes(b"\x00\x01")
            assert ws.receive_json()["payload"]["code"] == "INVALID_JSON"

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_unknown_message_type(self, client):
        with client.websocket_connect("/ws/chat") as ws:
            ws.send_json({"type": "teleport", "payload": {}})
            assert ws.receive_json()["payload"]["code"] == "UNKNOWN_MESSAGE_TYPE"

    def test_invalid_session_id_query(self, client):
        with client.websocket_connect("/ws/chat?sessionId=banana") as ws:
            assert ws.receive_json()["payload"]["code"] == "INVALID_SESSION_ID"

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_online_counter_cleared_on_disconnect(self, client, fake_redis):
        session_id = str(uuid.uuid4())

        with client.websocket_connect(f"/ws/chat?sessionId={session_id}") as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()
            assert fake_redis.data[f"session:{session_id}:online"] == "1"

        # Let the server finish its disconnect handling
        with client.websocket_connect("/ws/chat") as ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()

        assert f"session:{session_id}:online" not in fake_redis.data
