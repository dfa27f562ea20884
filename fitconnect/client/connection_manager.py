"""
Client-side connection manager for the push channel.

Owns the single transport of a client session. Other components never see
the transport; they talk to the manager through connect, disconnect, emit,
on and off.

Guarantees:
- at most one transport per manager: connect is a no-op while a connection
  for the same user is being opened or is open, and a connect for another
  user closes the current transport first
- a failed open leaves the manager disconnected and ready for another connect
- disconnect closes the transport, clears every subscription and is safe to
  call when already disconnected
- emit never queues: frames sent while not connected are logged and dropped
- user-scoped push events are only dispatched once the server acknowledged
  the authenticate handshake
"""

import uuid
from typing import Any

from ..exceptions import FitConnectError, NetworkError
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_state_machine import ClientConnectionStateMachine
from .event_dispatcher import EventDispatcher, EventHandler
from .transport import Transport, TransportFactory

logger = get_logger(__name__)

# Events handled before the handshake completes
CONTROL_EVENTS = frozenset({"authenticated", "error", "pong"})


class ConnectionManager:
    """Single push connection per client session."""

    def __init__(self, transport_factory: TransportFactory, dispatcher: EventDispatcher | None = None) -> None:
        self._transport_factory = transport_factory
        self._transport: Transport | None = None
        self.dispatcher = dispatcher or EventDispatcher()
        self.state_machine = ClientConnectionStateMachine(connection_id=uuid.uuid4().hex[:12])
        self.stats = {"transports_opened": 0, "frames_sent": 0, "frames_dropped": 0, "events_rejected": 0}

    @property
    def state(self) -> str:
        return self.state_machine.state_id

    @property
    def user_id(self) -> str | None:
        return self.state_machine.user_id if self.state_machine.is_active() else None

    @property
    def is_connected(self) -> bool:
        return self.state in ("connected", "authenticated")

    @property
    def is_authenticated(self) -> bool:
        return self.state == "authenticated"

    async def connect(self, user_id: str) -> bool:
        """
        Open the push channel for user_id and send the authenticate handshake.

        Returns:
            True when a transport was opened by this call
        """
        if self.state_machine.is_active():
            if self.state_machine.user_id == user_id:
                logger.debug("connect ignored, connection already active", user_id=user_id, state=self.state)
                return False
            logger.info(
                "Superseding push connection for a different user",
                previous_user_id=self.state_machine.user_id,
                user_id=user_id,
            )
            await self._close_transport()

        self.state_machine.begin_connect(user_id=user_id)
        transport = self._open_transport()
        try:
            await transport.open()
        except NetworkError as e:
            if self._transport is transport:
                self._transport = None
                self.state_machine.connection_failed(error=e)
            return False

        if self._transport is not transport or self.state != "connecting":
            # disconnect() or another connect() won while the socket was opening
            logger.debug("Discarding transport opened after teardown", user_id=user_id)
            await transport.close()
            return False

        self.stats["transports_opened"] += 1
        self.state_machine.transport_opened()
        await self.emit("authenticate", {"userId": user_id})
        return True

    async def disconnect(self) -> None:
        """Close the transport, clear every subscription and reset to disconnected."""
        await self._close_transport()
        self.dispatcher.clear()

    async def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if self.state_machine.is_active():
            self.state_machine.teardown()
        if transport is not None:
            try:
                await transport.close()
            except (FitConnectError, OSError) as e:
                logger.warning("Error closing push transport", error=str(e))

    async def emit(self, event: str, payload: dict[str, Any]) -> bool:
        """
        Send a frame upstream if connected; otherwise log and drop it.

        Returns:
            True when the frame was handed to the transport
        """
        transport = self._transport
        if transport is None or not self.is_connected or not transport.is_open:
            self.stats["frames_dropped"] += 1
            logger.warning("Dropping emit while not connected", client_event=event, state=self.state)
            return False
        try:
            await transport.send(event, payload)
        except NetworkError as e:
            self.stats["frames_dropped"] += 1
            logger.warning("Emit failed", client_event=event, error=str(e))
            return False
        self.stats["frames_sent"] += 1
        return True

    def on(self, event_name: str, handler: EventHandler, *, replace: bool = True) -> None:
        self.dispatcher.on(event_name, handler, replace=replace)

    def off(self, event_name: str) -> None:
        self.dispatcher.off(event_name)

    def _open_transport(self) -> Transport:
        """Create a transport whose callbacks are ignored once it is no longer current."""
        current: list[Transport] = []

        async def on_event(event: str, data: dict[str, Any]) -> None:
            if current and self._transport is current[0]:
                await self._handle_event(event, data)

        async def on_close(error: Exception | None) -> None:
            if current and self._transport is current[0]:
                await self._handle_close(error)

        transport = self._transport_factory(on_event, on_close)
        current.append(transport)
        self._transport = transport
        return transport

    async def _handle_event(self, event: str, data: dict[str, Any]) -> None:
        if event == "authenticated":
            if self.state == "connected" and data.get("userId") == self.state_machine.user_id:
                self.state_machine.handshake_accepted()
            else:
                logger.warning("Unexpected handshake acknowledgement", state=self.state, user_id=data.get("userId"))
        elif event == "error":
            logger.warning("Push channel error", error_type=data.get("error_type"), message=data.get("message"))
        elif not self.is_authenticated:
            self.stats["events_rejected"] += 1
            logger.warning("Rejecting push event before authentication", push_event=event, state=self.state)
            return

        await self.dispatcher.dispatch(event, data)

    async def _handle_close(self, error: Exception | None) -> None:
        self._transport = None
        if self.state in ("connected", "authenticated"):
            self.state_machine.connection_lost(error=error)
        elif self.state == "connecting":
            self.state_machine.connection_failed(error=error)

    def get_stats(self) -> dict[str, Any]:
        return {
            **self.stats,
            **self.state_machine.get_stats(),
            "has_transport": self._transport is not None,
            "subscriptions": self.dispatcher.event_names,
        }
