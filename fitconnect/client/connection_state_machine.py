"""
Connection state machine for the client push channel.

States:
- disconnected: no transport; the only state from which a connection may start
- connecting: transport is being opened
- connected: transport open, authenticate handshake sent
- authenticated: server acknowledged the handshake; user-scoped pushes flow

Transitions:
- disconnected -> connecting: begin_connect
- connecting -> connected: transport_opened
- connected -> authenticated: handshake_accepted
- connecting -> disconnected: connection_failed
- connected/authenticated -> disconnected: connection_lost
- connecting/connected/authenticated -> disconnected: teardown
"""

from datetime import UTC, datetime
from typing import Any

from statemachine import State, StateMachine

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ClientConnectionStateMachine(StateMachine):
    """State machine for one client session's push connection."""

    disconnected = State("Disconnected", initial=True)
    connecting = State("Connecting")
    connected = State("Connected")
    authenticated = State("Authenticated")

    begin_connect = disconnected.to(connecting)
    transport_opened = connecting.to(connected)
    handshake_accepted = connected.to(authenticated)
    connection_failed = connecting.to(disconnected)
    connection_lost = connected.to(disconnected) | authenticated.to(disconnected)
    teardown = connecting.to(disconnected) | connected.to(disconnected) | authenticated.to(disconnected)

    def __init__(self, connection_id: str):
        # Set attributes BEFORE super().__init__() because on_enter_state is called during init
        self.connection_id = connection_id
        self.user_id: str | None = None
        self.authenticated_user_id: str | None = None
        self.last_error: Exception | None = None
        self.last_connected_time: datetime | None = None
        self.total_connections = 0
        self.total_failures = 0
        self.total_disconnections = 0

        super().__init__()

    def on_enter_state(self, state: State, event=None, **kwargs) -> None:
        logger.debug(
            "Push connection state transition",
            connection_id=self.connection_id,
            trigger_event=str(event) if event else "initial",
            to_state=state.id,
        )

    def on_begin_connect(self, user_id: str) -> None:
        self.user_id = user_id
        self.last_error = None

    def on_transport_opened(self) -> None:
        self.last_connected_time = datetime.now(UTC)
        self.total_connections += 1

    def on_handshake_accepted(self) -> None:
        self.authenticated_user_id = self.user_id
        logger.info("Push channel authenticated", connection_id=self.connection_id, user_id=self.user_id)

    def on_connection_failed(self, error: Exception | None = None) -> None:
        self.last_error = error
        self.total_failures += 1
        logger.warning(
            "Push connection failed",
            connection_id=self.connection_id,
            user_id=self.user_id,
            error=str(error) if error else "unknown",
        )

    def on_connection_lost(self, error: Exception | None = None) -> None:
        self.last_error = error
        self.total_disconnections += 1
        logger.warning(
            "Push connection lost",
            connection_id=self.connection_id,
            user_id=self.user_id,
            error=str(error) if error else None,
        )

    def on_teardown(self) -> None:
        self.total_disconnections += 1
        logger.info("Push connection closed", connection_id=self.connection_id, user_id=self.user_id)

    def on_enter_disconnected(self) -> None:
        self.authenticated_user_id = None

    @property
    def state_id(self) -> str:
        return self.current_state_value

    def is_active(self) -> bool:
        """True while a transport exists or is being opened."""
        return self.current_state_value != self.disconnected.id

    def get_stats(self) -> dict[str, Any]:
        """Connection statistics for monitoring and tests."""
        return {
            "connection_id": self.connection_id,
            "current_state": self.current_state_value,
            "user_id": self.user_id,
            "authenticated_user_id": self.authenticated_user_id,
            "total_connections": self.total_connections,
            "total_failures": self.total_failures,
            "total_disconnections": self.total_disconnections,
            "last_connected_time": self.last_connected_time.isoformat() if self.last_connected_time else None,
            "last_error": str(self.last_error) if self.last_error else None,
        }
