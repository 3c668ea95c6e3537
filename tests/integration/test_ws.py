from __future__ import annotations

import pytest
from starlette.websockets import WebSocketDisconnect

from tests.conftest import auth, make_token


def _connect(client, user_id: str):
    return client.websocket_connect(f"/ws/chat?token={make_token(user_id)}")


def _close_code(client, url: str) -> tuple[int, str | None]:
    # The handshake is accepted, so the client reads the close frame itself.
    with client.websocket_connect(url) as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    return exc.value.code, exc.value.reason


def test_connect_receives_connected_event(client):
    with _connect(client, "bob") as ws:
        event = ws.receive_json()

        assert event["type"] == "connected"
        assert event["data"]["user_id"] == "bob"
        assert client.get("/healthz").json()["online_users"] == 1


def test_missing_token_closes_with_4001(client):
    assert _close_code(client, "/ws/chat") == (4001, "Authentication required")


def test_bad_token_closes_with_4001(client):
    code, _reason = _close_code(client, "/ws/chat?token=garbage")
    assert code == 4001


def test_banned_user_closes_with_4003(client, banned):
    banned.banned.add("mallory")

    code, reason = _close_code(client, f"/ws/chat?token={make_token('mallory')}")

    assert code == 4003
    assert reason == "Your account has been suspended"
    assert client.get("/healthz").json()["connections"] == 0


def test_connection_limit_per_user_closes_with_1013(client):
    # .env.test caps each user at three live connections
    with _connect(client, "bob") as a, _connect(client, "bob") as b, _connect(client, "bob") as c:
        for ws in (a, b, c):
            assert ws.receive_json()["type"] == "connected"
        with _connect(client, "bob") as extra:
            with pytest.raises(WebSocketDisconnect) as exc:
                extra.receive_json()
            assert exc.value.code == 1013


def test_rest_send_reaches_joined_receiver(client):
    with _connect(client, "bob") as ws:
        assert ws.receive_json()["type"] == "connected"
        ws.send_json({"type": "join_chat", "data": {"room": "alice_bob"}})
        assert ws.receive_json() == {"type": "joined", "data": {"room": "alice_bob"}}

        resp = client.post(
            "/api/v1/messages",
            json={"receiver_id": "bob", "content": "hello"},
            headers=auth("alice"),
        )
        assert resp.json()["delivery"]["status"] == "delivered"

        event = ws.receive_json()
        assert event["type"] == "new_message"
        assert event["data"]["content"] == "hello"
        assert event["data"]["sender_id"] == "alice"


def test_join_foreign_room_is_refused(client):
    with _connect(client, "mallory") as ws:
        ws.receive_json()
        ws.send_json({"type": "join_chat", "data": {"room": "alice_bob"}})

        event = ws.receive_json()
        assert event["type"] == "error"
        assert event["data"]["code"] == "forbidden"


def test_ws_send_message_between_two_users(client):
    with _connect(client, "alice") as alice_ws, _connect(client, "bob") as bob_ws:
        alice_ws.receive_json()
        bob_ws.receive_json()

        alice_ws.send_json({"type": "send_message", "data": {"receiver": "bob", "content": "hi"}})

        sent = alice_ws.receive_json()
        received = bob_ws.receive_json()
        assert sent["type"] == "message_sent"
        assert received["type"] == "new_message"
        assert received["data"]["id"] == sent["data"]["id"]

        bob_ws.send_json({"type": "mark_read", "data": {"message_id": sent["data"]["id"]}})
        read = alice_ws.receive_json()
        assert read["type"] == "message_read"
        assert read["data"]["id"] == sent["data"]["id"]


def test_ws_blank_message_returns_error(client, db):
    with _connect(client, "alice") as ws:
        ws.receive_json()
        ws.send_json({"type": "send_message", "data": {"receiver": "bob", "content": "  "}})

        event = ws.receive_json()
        assert event == {
            "type": "error",
            "data": {"code": "invalid_content", "detail": "Message content must not be empty"},
        }
    assert db.messages == {}


def test_ws_store_failure_reports_send_failed(client, db):
    db.fail_commits = True
    with _connect(client, "alice") as ws:
        ws.receive_json()
        ws.send_json({"type": "send_message", "data": {"receiver": "bob", "content": "hi"}})

        assert ws.receive_json()["data"]["code"] == "send_failed"


def test_ping_and_bad_payloads(client):
    with _connect(client, "alice") as ws:
        ws.receive_json()

        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"

        ws.send_text("{not json")
        assert ws.receive_json()["data"]["code"] == "invalid_payload"

        ws.send_json({"type": "dance"})
        assert ws.receive_json()["data"]["code"] == "unknown_type"


def test_rest_mark_read_reaches_joined_connection(client):
    msg = client.post(
        "/api/v1/messages",
        json={"receiver_id": "bob", "content": "hello"},
        headers=auth("alice"),
    ).json()["message"]

    with _connect(client, "bob") as ws:
        assert ws.receive_json()["type"] == "connected"
        ws.send_json({"type": "join_chat", "data": {"room": "alice_bob"}})
        assert ws.receive_json()["type"] == "joined"

        resp = client.put(f"/api/v1/messages/{msg['id']}/read", headers=auth("bob"))
        assert resp.status_code == 200

        event = ws.receive_json()
        assert event["type"] == "message_read"
        assert event["data"]["id"] == msg["id"]


def test_rest_delete_reaches_other_participant(client):
    msg = client.post(
        "/api/v1/messages",
        json={"receiver_id": "bob", "content": "oops"},
        headers=auth("alice"),
    ).json()["message"]

    with _connect(client, "bob") as ws:
        assert ws.receive_json()["type"] == "connected"

        client.delete(f"/api/v1/messages/{msg['id']}", headers=auth("alice"))

        assert ws.receive_json() == {
            "type": "message_deleted",
            "data": {"id": msg["id"], "deleted_by": "alice"},
        }
