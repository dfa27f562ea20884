"""
Real-time API endpoints for FitConnect.

The push channel lives at /ws. The bearer token travels in the "token"
query parameter because browsers cannot set headers on WebSocket upgrades.
"""

from typing import Any

from fastapi import APIRouter, WebSocket, status

from ..auth.tokens import decode_access_token
from ..dependencies import ConnectionManagerDep
from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..exceptions import AuthenticationError
from ..realtime.connection_manager import ConnectionManager
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Authenticated push channel; unauthenticated sockets are closed with 1008."""
    state = websocket.app.state
    connection_manager: ConnectionManager | None = getattr(state, "connection_manager", None)
    if connection_manager is None:
        logger.error("Connection manager not initialized; rejecting push connection")
        await websocket.accept()
        await websocket.send_json(
            create_websocket_error_response(ErrorType.CONNECTION_ERROR, "Service temporarily unavailable")
        )
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        return

    token = websocket.query_params.get("token")
    try:
        claims = decode_access_token(token, state.config.security)
    except AuthenticationError as e:
        await websocket.accept()
        await websocket.send_json(
            create_websocket_error_response(
                ErrorType.AUTHENTICATION_FAILED, e.message, user_friendly=ErrorMessages.AUTHENTICATION_REQUIRED
            )
        )
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await handle_websocket_connection(websocket, claims, connection_manager)


@realtime_router.get("/api/realtime/stats")
async def realtime_stats(connection_manager: ConnectionManager = ConnectionManagerDep) -> dict[str, Any]:
    """Push channel connection statistics."""
    return connection_manager.get_stats()
