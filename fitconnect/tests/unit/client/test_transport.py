"""Tests for the websockets-backed transport that need no live server."""

from unittest.mock import AsyncMock, patch

import pytest
import websockets

from fitconnect.client.transport import WebSocketTransport, build_socket_url, websocket_transport_factory
from fitconnect.error_types import ErrorMessages
from fitconnect.exceptions import NetworkError


def test_build_socket_url_appends_token() -> None:
    assert build_socket_url("ws://host/ws", "a b") == "ws://host/ws?token=a+b"
    assert build_socket_url("ws://host/ws?v=1", "tok") == "ws://host/ws?v=1&token=tok"


def test_factory_binds_url() -> None:
    factory = websocket_transport_factory("ws://host/ws", "tok")
    transport = factory(AsyncMock(), AsyncMock())
    assert isinstance(transport, WebSocketTransport)
    assert transport.url == "ws://host/ws?token=tok"
    assert not transport.is_open


@pytest.mark.asyncio
async def test_open_failure_raises_network_error() -> None:
    transport = WebSocketTransport("ws://127.0.0.1:9/ws", AsyncMock(), AsyncMock())
    with patch("fitconnect.client.transport.websockets.connect", AsyncMock(side_effect=OSError("refused"))):
        with pytest.raises(NetworkError) as exc_info:
            await transport.open()
    assert exc_info.value.user_friendly == ErrorMessages.CONNECTION_ERROR
    assert not transport.is_open


@pytest.mark.asyncio
async def test_send_when_closed_raises_network_error() -> None:
    transport = WebSocketTransport("ws://host/ws", AsyncMock(), AsyncMock())
    with pytest.raises(NetworkError) as exc_info:
        await transport.send("ping", {})
    assert exc_info.value.user_friendly == ErrorMessages.CONNECTION_ERROR


@pytest.mark.asyncio
async def test_close_is_idempotent_and_not_reported() -> None:
    on_close = AsyncMock()
    transport = WebSocketTransport("ws://host/ws", AsyncMock(), on_close)
    await transport.close()
    await transport.close()
    on_close.assert_not_awaited()


def test_websockets_exception_types_available() -> None:
    assert issubclass(websockets.ConnectionClosed, websockets.WebSocketException)
