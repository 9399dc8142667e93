import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from collaboration.interfaces import ws_handler
from main import app
from shared.exceptions import PersistenceError


@pytest.fixture
def ws_client(monkeypatch, registry, alice):
    async def _authenticate(token):
        return alice if token == "good" else None

    monkeypatch.setattr(ws_handler, "_authenticate", _authenticate)
    monkeypatch.setattr(app.state, "registry", registry)
    return TestClient(app)


def test_missing_token_rejected_at_handshake():
    with pytest.raises(WebSocketDisconnect) as exc:
        with TestClient(app).websocket_connect("/ws"):
            pass
    assert exc.value.code == 4001


def test_invalid_token_rejected_at_handshake(ws_client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with ws_client.websocket_connect("/ws?token=bad"):
            pass
    assert exc.value.code == 4001


def test_session_round_trip(ws_client, registry, memory_repo, notes):
    with ws_client.websocket_connect("/ws?token=good") as ws:
        ws.send_json({"event": "join-document", "data": "notes"})
        joined = ws.receive_json()
        assert joined["event"] == "room-users"
        assert [p["id"] for p in joined["data"]] == ["alice"]

        ws.send_json(
            {"event": "document-change", "data": {"documentId": "notes", "content": "<p>ws</p>"}}
        )
        updated = ws.receive_json()
        assert updated["event"] == "document-updated"
        assert updated["data"]["content"] == "<p>ws</p>"

        ws.send_text("{not json")
        assert ws.receive_json() == {"event": "error", "data": "Malformed JSON"}

    assert memory_repo.documents["notes"].content == "<p>ws</p>"
    assert len(registry) == 0


def test_binary_frame_keeps_session_open(ws_client, registry, notes):
    with ws_client.websocket_connect("/ws?token=good") as ws:
        ws.send_json({"event": "join-document", "data": "notes"})
        assert ws.receive_json()["event"] == "room-users"

        ws.send_bytes(b"\x00\x01")
        assert ws.receive_json() == {"event": "error", "data": "Expected a text frame"}

        ws.send_json(
            {"event": "typing", "data": {"documentId": "notes", "isTyping": True}}
        )
        ws.send_json({"event": "join-document", "data": "notes"})
        rejoined = ws.receive_json()
        assert rejoined["event"] == "room-users"
        assert [p["id"] for p in rejoined["data"]] == ["alice"]
        assert len(registry) == 1

    assert len(registry) == 0


def test_store_outage_closes_handshake(monkeypatch):
    async def _authenticate(token):
        raise PersistenceError()

    monkeypatch.setattr(ws_handler, "_authenticate", _authenticate)
    with pytest.raises(WebSocketDisconnect) as exc:
        with TestClient(app).websocket_connect("/ws?token=good"):
            pass
    assert exc.value.code == 1011
