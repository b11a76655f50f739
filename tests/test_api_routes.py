"""
Integration tests for API Routes.
Uses FastAPI TestClient to drive the REST endpoints and the relay WebSocket end to end.
"""

# Disable this warning as it is a false positive caused by pytest syntax
# pylint: disable=redefined-outer-name

import pytest
from fastapi.testclient import TestClient

from src.config.settings import Settings
from src.main import create_app


@pytest.fixture
def client():
    """A fresh app per test, so rooms never leak between tests."""
    app = create_app(Settings(admin_token="secret", static_dir="missing-static-dir"))
    with TestClient(app) as test_client:
        yield test_client


def create_room(websocket, username="alice", ttl_ms=60_000):
    websocket.send_json({"event": "createRoom", "data": {"ttl_ms": ttl_ms, "username": username}})
    frame = websocket.receive_json()
    assert frame["event"] == "roomCreated"
    return frame["data"]["room_code"]


def test_health_check(client):
    """Test /health endpoint."""
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "online", "rooms": 0, "connections": 0}


def test_ui_not_served_without_static_dir(client):
    response = client.get("/")
    assert response.status_code == 404


def test_room_details(client):
    with client.websocket_connect("/api/ws") as alice:
        code = create_room(alice)

        response = client.get(f"/api/rooms/{code.lower()}")

        assert response.status_code == 200
        data = response.json()
        assert data["room_code"] == code
        assert data["member_count"] == 1
        assert data["message_count"] == 0
        assert data["max_members"] == 10
        assert data["is_full"] is False
        assert data["expires_at"] > data["created_at"]

        health = client.get("/api/health").json()
        assert health["rooms"] == 1
        assert health["connections"] == 1


def test_room_details_not_found(client):
    response = client.get("/api/rooms/NOPE00")

    assert response.status_code == 404
    assert response.json()["detail"] == "Room does not exist."


def test_close_room_requires_admin_token(client):
    with client.websocket_connect("/api/ws") as alice:
        code = create_room(alice)

        assert client.delete(f"/api/rooms/{code}").status_code == 403
        assert client.delete(f"/api/rooms/{code}", headers={"X-Admin-Token": "wrong"}).status_code == 403
        assert client.get(f"/api/rooms/{code}").status_code == 200


def test_close_room_disabled_without_configured_token():
    app = create_app(Settings(admin_token=None, static_dir="missing-static-dir"))
    with TestClient(app) as test_client:
        response = test_client.delete("/api/rooms/ABC123", headers={"X-Admin-Token": "anything"})

    assert response.status_code == 403


def test_close_room(client):
    with client.websocket_connect("/api/ws") as alice:
        code = create_room(alice)

        response = client.delete(f"/api/rooms/{code}", headers={"X-Admin-Token": "secret"})

        assert response.status_code == 200
        assert response.json() == {"status": "closed", "room_code": code}

        frame = alice.receive_json()
        assert frame["event"] == "roomDeleted"
        assert frame["data"]["reason"] == "This room has been closed."

        assert client.get(f"/api/rooms/{code}").status_code == 404
        assert client.delete(f"/api/rooms/{code}", headers={"X-Admin-Token": "secret"}).status_code == 404


def test_websocket_relay_flow(client):
    """create -> join -> send -> disconnect over real sockets."""
    with client.websocket_connect("/api/ws") as alice:
        code = create_room(alice, "alice")

        with client.websocket_connect("/api/ws") as bob:
            bob.send_json({"event": "joinRoom", "data": {"roomCode": code, "username": "bob"}})

            joined = bob.receive_json()
            assert joined == {"event": "joinSuccess", "data": {"room_code": code, "chat_history": []}}

            notice = alice.receive_json()
            assert notice == {
                "event": "userJoined",
                "data": {"username": "bob", "message": "bob has joined the chat."},
            }

            bob.send_json({"event": "sendMessage", "data": {"roomCode": code, "encryptedMessage": "hi"}})

            for websocket in (bob, alice):
                frame = websocket.receive_json()
                assert frame["event"] == "receiveMessage"
                assert frame["data"]["payload"] == "hi"
                assert frame["data"]["sender"] == "bob"

        left = alice.receive_json()
        assert left == {"event": "userLeft", "data": {"username": "bob", "message": "bob has left the chat."}}


def test_websocket_errors_are_unicast(client):
    with client.websocket_connect("/api/ws") as alice:
        alice.send_text("garbage")
        assert alice.receive_json() == {
            "event": "error",
            "data": {"reason": "invalid_request", "message": "Malformed request."},
        }

        alice.send_json({"event": "joinRoom", "data": {"room_code": "NOPE00", "username": "alice"}})
        assert alice.receive_json() == {
            "event": "error",
            "data": {"reason": "room_not_found", "message": "Room does not exist."},
        }


def test_websocket_room_expiry(client):
    with client.websocket_connect("/api/ws") as alice:
        code = create_room(alice, ttl_ms=50)

        frame = alice.receive_json()

        assert frame == {
            "event": "roomDeleted",
            "data": {"room_code": code, "reason": "This room has expired and is now closed."},
        }
        assert client.get(f"/api/rooms/{code}").status_code == 404


def test_websocket_binary_frames(client):
    """Binary frames are parsed as UTF-8 JSON; undecodable ones get an error, not a dropped socket."""
    with client.websocket_connect("/api/ws") as alice:
        alice.send_bytes(b"\x00\x01")
        assert alice.receive_json() == {
            "event": "error",
            "data": {"reason": "invalid_request", "message": "Malformed request."},
        }

        alice.send_bytes(b'{"event": "createRoom", "data": {"username": "alice"}}')
        frame = alice.receive_json()
        assert frame["event"] == "roomCreated"


def test_close_room_normalizes_code(client):
    with client.websocket_connect("/api/ws") as alice:
        code = create_room(alice)

        response = client.delete(f"/api/rooms/{code.lower()}", headers={"X-Admin-Token": "secret"})

        assert response.status_code == 200
        assert response.json() == {"status": "closed", "room_code": code}
        assert alice.receive_json()["event"] == "roomDeleted"
