"""
WebSocket endpoint tests

Run synchronously through Starlette's TestClient; token lookup is replaced so
the handshake never touches the database.
"""
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from teamdesk.main import app
from teamdesk.core.config import settings
from teamdesk.api.v1.endpoints import websocket as ws_endpoint


def fake_lookup(user_id):
    async def get_user_from_token(token, db):
        return SimpleNamespace(id=user_id) if user_id else None
    return get_user_from_token


@pytest.fixture
def ws_client():
    return TestClient(app)


class TestHandshake:

    def test_invalid_token_is_rejected(self, ws_client, monkeypatch):
        monkeypatch.setattr(ws_endpoint, "get_user_from_token", fake_lookup(None))

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with ws_client.websocket_connect("/api/v1/ws?token=garbage"):
                pass

        assert exc_info.value.code == 1008

    def test_missing_token_is_rejected(self, ws_client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with ws_client.websocket_connect("/api/v1/ws"):
                pass

        assert exc_info.value.code == 1008

    def test_connection_status_on_connect(self, ws_client, monkeypatch):
        monkeypatch.setattr(ws_endpoint, "get_user_from_token", fake_lookup("user-1"))

        with ws_client.websocket_connect("/api/v1/ws?token=valid") as websocket:
            message = websocket.receive_json()

        assert message["type"] == "connection_status"
        assert message["status"] == "connected"
        assert message["userId"] == "user-1"
        assert "data" not in message
        assert "timestamp" in message


class TestClientMessages:

    def test_ping_pong(self, ws_client, monkeypatch):
        monkeypatch.setattr(ws_endpoint, "get_user_from_token", fake_lookup("user-1"))

        with ws_client.websocket_connect("/api/v1/ws?token=valid") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "ping"})
            reply = websocket.receive_json()

        assert reply["type"] == "pong"

    def test_malformed_message_gets_error(self, ws_client, monkeypatch):
        monkeypatch.setattr(ws_endpoint, "get_user_from_token", fake_lookup("user-1"))

        with ws_client.websocket_connect("/api/v1/ws?token=valid") as websocket:
            websocket.receive_json()
            websocket.send_text("not json")
            reply = websocket.receive_json()

            # Connection survives the bad frame
            websocket.send_json({"type": "ping"})
            pong = websocket.receive_json()

        assert reply["type"] == "error"
        assert reply["message"] == "Failed to process message"
        assert "data" not in reply
        assert pong["type"] == "pong"

    def test_keepalive_ping_when_idle(self, ws_client, monkeypatch):
        monkeypatch.setattr(ws_endpoint, "get_user_from_token", fake_lookup("user-1"))
        monkeypatch.setattr(settings, "WS_PING_INTERVAL_SECONDS", 0.05)

        with ws_client.websocket_connect("/api/v1/ws?token=valid") as websocket:
            websocket.receive_json()
            message = websocket.receive_json()

        assert message["type"] == "ping"
