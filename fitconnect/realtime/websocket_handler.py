"""
WebSocket handler for the FitConnect push channel.

The socket carries JSON envelopes {"event": name, "data": {...}} in both
directions. Clients may send:
- authenticate {"userId": id}: joins scope user:<id>; the id must match the
  bearer token the socket was opened with
- ping: answered with pong

Unknown events are logged and ignored. A connection that never completes
the handshake stays outside every user scope and receives no pushes.
"""

import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from ..auth.tokens import TokenClaims
from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_manager import ConnectionManager
from .envelope import build_event

logger = get_logger(__name__)


async def handle_authenticate(
    websocket: WebSocket,
    connection_id: str,
    claims: TokenClaims,
    data: dict[str, Any],
    connection_manager: ConnectionManager,
) -> bool:
    """Validate the handshake and join the user scope. Returns True on success."""
    user_id = data.get("userId")
    if not isinstance(user_id, str) or not user_id:
        await websocket.send_json(
            create_websocket_error_response(
                ErrorType.INVALID_INPUT, "authenticate requires userId", user_friendly=ErrorMessages.INVALID_INPUT
            )
        )
        return False

    if user_id != claims.user_id:
        logger.warning(
            "Rejected authenticate for a different user",
            connection_id=connection_id,
            user_id=claims.user_id,
            requested_user_id=user_id,
        )
        await websocket.send_json(
            create_websocket_error_response(
                ErrorType.AUTHORIZATION_DENIED,
                "authenticate userId does not match token subject",
                user_friendly=ErrorMessages.ACCESS_DENIED,
            )
        )
        return False

    await connection_manager.join_user_scope(connection_id, user_id)
    await websocket.send_json(build_event("authenticated", {"userId": user_id}))
    return True


async def handle_websocket_message(
    websocket: WebSocket,
    connection_id: str,
    claims: TokenClaims,
    raw: str,
    connection_manager: ConnectionManager,
) -> None:
    """Dispatch one inbound frame."""
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Invalid JSON on push channel", connection_id=connection_id)
        await websocket.send_json(
            create_websocket_error_response(
                ErrorType.INVALID_INPUT, "Invalid JSON format", user_friendly=ErrorMessages.INVALID_INPUT
            )
        )
        return

    if not isinstance(frame, dict):
        logger.warning("Ignoring non-object frame", connection_id=connection_id)
        return

    event = frame.get("event")
    data = frame.get("data") if isinstance(frame.get("data"), dict) else {}

    if event == "authenticate":
        await handle_authenticate(websocket, connection_id, claims, data, connection_manager)
    elif event == "ping":
        await websocket.send_json(build_event("pong"))
    else:
        logger.debug("Ignoring unknown client event", connection_id=connection_id, client_event=event)


async def handle_websocket_connection(
    websocket: WebSocket, claims: TokenClaims, connection_manager: ConnectionManager
) -> None:
    """Run the receive loop of one authenticated socket until it closes."""
    connection_id = await connection_manager.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            await handle_websocket_message(websocket, connection_id, claims, raw, connection_manager)
    except WebSocketDisconnect as e:
        logger.info("Push connection closed by client", connection_id=connection_id, code=e.code)
    finally:
        await connection_manager.disconnect(connection_id)
