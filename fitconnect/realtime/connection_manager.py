"""
Server-side push connection manager.

Tracks accepted WebSocket connections and the per-user scopes they joined.
A connection only joins scope "user:<id>" after a successful authenticate
handshake, so pushes addressed to a user reach that user's sockets and no
others. Delivery is best-effort: a socket that fails to send is dropped.
"""

import asyncio
import time
import uuid
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import build_event, encode_event

logger = get_logger(__name__)


def user_scope(user_id: str) -> str:
    """Name of the broadcast scope for one user."""
    return f"user:{user_id}"


class ConnectionManager:
    """Manages push connections and their user scopes."""

    def __init__(self) -> None:
        # connection_id -> WebSocket
        self.active_websockets: dict[str, WebSocket] = {}
        # scope -> connection ids
        self.scopes: dict[str, set[str]] = {}
        # connection_id -> scope joined by the handshake
        self.connection_scopes: dict[str, str] = {}
        self.connection_timestamps: dict[str, float] = {}
        self._lock = asyncio.Lock()
        self.stats = {
            "connections_accepted": 0,
            "connections_closed": 0,
            "events_delivered": 0,
            "delivery_failures": 0,
        }

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a socket and return its connection id."""
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        async with self._lock:
            self.active_websockets[connection_id] = websocket
            self.connection_timestamps[connection_id] = time.time()
            self.stats["connections_accepted"] += 1
        logger.info("Push connection accepted", connection_id=connection_id)
        return connection_id

    async def join_user_scope(self, connection_id: str, user_id: str) -> str:
        """
        Join a connection to the scope of user_id.

        A connection belongs to at most one scope; joining again moves it.
        """
        scope = user_scope(user_id)
        async with self._lock:
            if connection_id not in self.active_websockets:
                raise KeyError(connection_id)
            previous = self.connection_scopes.get(connection_id)
            if previous and previous != scope:
                self.scopes.get(previous, set()).discard(connection_id)
            self.scopes.setdefault(scope, set()).add(connection_id)
            self.connection_scopes[connection_id] = scope
        logger.info("Connection joined user scope", connection_id=connection_id, user_id=user_id, scope=scope)
        return scope

    async def disconnect(self, connection_id: str) -> None:
        """Forget a connection; safe to call for unknown ids."""
        async with self._lock:
            self._forget(connection_id)

    def _forget(self, connection_id: str) -> None:
        websocket = self.active_websockets.pop(connection_id, None)
        self.connection_timestamps.pop(connection_id, None)
        scope = self.connection_scopes.pop(connection_id, None)
        if scope:
            members = self.scopes.get(scope)
            if members is not None:
                members.discard(connection_id)
                if not members:
                    del self.scopes[scope]
        if websocket is not None:
            self.stats["connections_closed"] += 1
            logger.info("Push connection removed", connection_id=connection_id, scope=scope)

    def is_user_connected(self, user_id: str) -> bool:
        return bool(self.scopes.get(user_scope(user_id)))

    async def send_to_connection(self, connection_id: str, event: dict[str, Any]) -> bool:
        """Send a pre-built envelope to a single connection."""
        websocket = self.active_websockets.get(connection_id)
        if websocket is None:
            return False
        try:
            if websocket.application_state != WebSocketState.CONNECTED:
                raise RuntimeError("WebSocket is not connected")
            await websocket.send_text(encode_event(event))
            return True
        except (RuntimeError, ConnectionError) as e:
            self.stats["delivery_failures"] += 1
            logger.warning("Dropping push connection after send failure", connection_id=connection_id, error=str(e))
            async with self._lock:
                self._forget(connection_id)
            return False

    async def send_to_user(self, user_id: str, event: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Push an event to every connection in the user's scope.

        Returns:
            Delivery summary with delivered and failed counts
        """
        envelope = build_event(event, data)
        async with self._lock:
            targets = list(self.scopes.get(user_scope(user_id), ()))

        delivered = 0
        for connection_id in targets:
            if await self.send_to_connection(connection_id, envelope):
                delivered += 1
        self.stats["events_delivered"] += delivered

        if not targets:
            logger.debug("Push skipped, user has no connections", user_id=user_id, push_event=event)
        else:
            logger.debug(
                "Push delivered", user_id=user_id, push_event=event, delivered=delivered, failed=len(targets) - delivered
            )
        return {"delivered": delivered, "failed": len(targets) - delivered}

    def get_stats(self) -> dict[str, Any]:
        """Connection and delivery statistics."""
        return {
            **self.stats,
            "active_connections": len(self.active_websockets),
            "authenticated_connections": len(self.connection_scopes),
            "user_scopes": len(self.scopes),
        }
