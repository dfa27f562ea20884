"""Integration tests for the /ws push channel against the running app."""

import pytest
from fastapi import WebSocketDisconnect

from fitconnect.error_types import ErrorMessages


def authenticate(websocket, user_id: str) -> dict:
    websocket.send_json({"event": "authenticate", "data": {"userId": user_id}})
    return websocket.receive_json()


def test_handshake_ack(client, token_for) -> None:
    with client.websocket_connect(f"/ws?token={token_for('c1')}") as websocket:
        frame = authenticate(websocket, "c1")
        assert frame["event"] == "authenticated"
        assert frame["data"] == {"userId": "c1"}
        assert isinstance(frame["sequence_number"], int)

        stats = client.get("/api/realtime/stats").json()
        assert stats["authenticated_connections"] == 1


def test_ping_pong(client, token_for) -> None:
    with client.websocket_connect(f"/ws?token={token_for('t1')}") as websocket:
        websocket.send_json({"event": "ping"})
        assert websocket.receive_json()["event"] == "pong"


@pytest.mark.parametrize("query", ["", "?token=garbage"])
def test_bad_token_closes_with_policy_violation(client, query) -> None:
    with client.websocket_connect(f"/ws{query}") as websocket:
        frame = websocket.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["error_type"] == "authentication_failed"
        assert frame["data"]["user_friendly"] == ErrorMessages.AUTHENTICATION_REQUIRED
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()
        assert exc_info.value.code == 1008


def test_new_message_push_after_send(client, token_for, auth_headers) -> None:
    with client.websocket_connect(f"/ws?token={token_for('c1')}") as websocket:
        authenticate(websocket, "c1")
        response = client.post(
            "/api/messages", json={"recipientId": "c1", "message": "Treino às 18h"}, headers=auth_headers("t1")
        )
        assert response.status_code == 201

        frame = websocket.receive_json()
        assert frame["event"] == "new_message"
        assert frame["data"]["message"] == "Treino às 18h"
        assert frame["data"]["sender"] == {"id": "t1", "name": "Ana Silva"}
        assert frame["data"]["messageId"] == response.json()["data"]["message"]["id"]


def test_alert_pushes_both_events(client, token_for, auth_headers) -> None:
    with client.websocket_connect(f"/ws?token={token_for('c1')}") as websocket:
        authenticate(websocket, "c1")
        client.post("/api/messages/alert/workout-missed", json={"clientId": "c1"}, headers=auth_headers("t1"))
        events = [websocket.receive_json()["event"] for _ in range(2)]
        assert events == ["workout_missed", "trainer_alert"]


def test_foreign_authenticate_receives_no_pushes(client, token_for, auth_headers) -> None:
    with client.websocket_connect(f"/ws?token={token_for('c1')}") as websocket:
        frame = authenticate(websocket, "c2")
        assert frame["event"] == "error"
        assert frame["data"]["error_type"] == "authorization_denied"

        response = client.post(
            "/api/messages", json={"recipientId": "c2", "message": "Só para a Eva"}, headers=auth_headers("t2")
        )
        assert response.status_code == 201

        # A push would have been written before the pong
        websocket.send_json({"event": "ping"})
        assert websocket.receive_json()["event"] == "pong"


def test_unauthenticated_socket_receives_no_pushes(client, token_for, auth_headers) -> None:
    with client.websocket_connect(f"/ws?token={token_for('c1')}") as websocket:
        client.post("/api/messages", json={"recipientId": "c1", "message": "x"}, headers=auth_headers("t1"))
        websocket.send_json({"event": "ping"})
        assert websocket.receive_json()["event"] == "pong"


def test_disconnect_is_cleaned_up(client, token_for) -> None:
    with client.websocket_connect(f"/ws?token={token_for('c1')}") as websocket:
        authenticate(websocket, "c1")
    stats = client.get("/api/realtime/stats").json()
    assert stats["active_connections"] == 0
    assert stats["connections_closed"] == 1
