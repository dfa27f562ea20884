"""
Push channel transports.

A transport owns one socket. It reports every inbound envelope to an event
callback as (event, data) and reports the end of the socket, clean or not,
to a close callback exactly once. Nothing outside the connection manager
holds a transport.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, Protocol
from urllib.parse import urlencode

import websockets

from ..error_types import ErrorMessages
from ..exceptions import NetworkError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

EventCallback = Callable[[str, dict[str, Any]], Awaitable[None]]
CloseCallback = Callable[[Exception | None], Awaitable[None]]


class Transport(Protocol):
    """Bidirectional event transport used by the connection manager."""

    @property
    def is_open(self) -> bool: ...

    async def open(self) -> None:
        """Open the socket; raises NetworkError on failure."""

    async def send(self, event: str, data: dict[str, Any]) -> None:
        """Send one envelope upstream."""

    async def close(self) -> None:
        """Close the socket; safe to call more than once."""


TransportFactory = Callable[[EventCallback, CloseCallback], Transport]


def build_socket_url(socket_url: str, access_token: str) -> str:
    """Append the bearer token as the token query parameter."""
    separator = "&" if "?" in socket_url else "?"
    return f"{socket_url}{separator}{urlencode({'token': access_token})}"


class WebSocketTransport:
    """Transport over the websockets library carrying JSON envelopes."""

    def __init__(
        self,
        url: str,
        on_event: EventCallback,
        on_close: CloseCallback,
        open_timeout: float | None = 10.0,
    ) -> None:
        self.url = url
        self._on_event = on_event
        self._on_close = on_close
        self._open_timeout = open_timeout
        self._ws: Any = None
        self._reader_task: asyncio.Task | None = None
        self._closing = False
        self._close_reported = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closing

    async def open(self) -> None:
        try:
            self._ws = await websockets.connect(self.url, open_timeout=self._open_timeout)
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as e:
            raise NetworkError(
                f"Cannot open push channel: {e}",
                create_error_context(operation="transport_open"),
                connection_type="websocket",
                user_friendly=ErrorMessages.CONNECTION_ERROR,
            ) from e
        self._reader_task = asyncio.create_task(self._read_loop(), name="fitconnect-push-reader")

    async def _read_loop(self) -> None:
        ws = self._ws
        if ws is None:
            return
        error: Exception | None = None
        try:
            async for raw in ws:
                try:
                    frame = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("Discarding malformed push frame", frame_length=len(raw))
                    continue
                if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
                    logger.warning("Discarding push frame without event name")
                    continue
                data = frame.get("data")
                await self._on_event(frame["event"], data if isinstance(data, dict) else {})
        except websockets.ConnectionClosed as e:
            if not self._closing:
                error = e
        except asyncio.CancelledError:
            raise
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: any reader failure ends the connection
            logger.error("Push reader failed", error=str(e), error_type=type(e).__name__)
            error = e
        await self._report_close(error)

    async def _report_close(self, error: Exception | None) -> None:
        if self._close_reported:
            return
        self._close_reported = True
        self._ws = None
        await self._on_close(error)

    async def send(self, event: str, data: dict[str, Any]) -> None:
        if not self.is_open:
            raise NetworkError(
                "Push channel is not open", connection_type="websocket", user_friendly=ErrorMessages.CONNECTION_ERROR
            )
        try:
            await self._ws.send(json.dumps({"event": event, "data": data}))
        except websockets.ConnectionClosed as e:
            raise NetworkError(
                f"Push channel closed while sending: {e}",
                connection_type="websocket",
                user_friendly=ErrorMessages.CONNECTION_ERROR,
            ) from e

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        # A deliberate close is not reported as a failure
        self._close_reported = True
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
        if self._reader_task is not None and self._reader_task is not asyncio.current_task():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._reader_task = None


def websocket_transport_factory(socket_url: str, access_token: str) -> TransportFactory:
    """Factory producing WebSocketTransports bound to one session's credential."""
    url = build_socket_url(socket_url, access_token)

    def factory(on_event: EventCallback, on_close: CloseCallback) -> Transport:
        return WebSocketTransport(url, on_event, on_close)

    return factory
