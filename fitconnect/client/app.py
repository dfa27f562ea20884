"""
Client composition root.

MessagingApp wires the pieces of one signed-in client together: the REST
client, the push connection, the notification toasts and every open chat
screen. It holds no global state; a process may run several apps, for
instance one per test.
"""

from collections.abc import Callable

import httpx

from ..config.models import ClientConfig
from ..structured_logging.enhanced_logging_config import get_logger
from .alert_producer import AlertProducer
from .api_client import MessageApiClient
from .chat_session import ChatSession
from .connection_manager import ConnectionManager
from .notifications import DEFAULT_PREVIEW_LENGTH, PushNotificationBinder, ToastCenter
from .session import SessionIdentity
from .transport import TransportFactory, websocket_transport_factory
from .view_state import StateListener

logger = get_logger(__name__)

TransportFactoryBuilder = Callable[[SessionIdentity], TransportFactory]


class MessagingApp:
    """Messaging features of a client for the lifetime of one sign-in."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport_factory_builder: TransportFactoryBuilder | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
        preview_length: int | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self._transport_factory_builder = transport_factory_builder
        self._http_transport = http_transport
        self._preview_length = preview_length or DEFAULT_PREVIEW_LENGTH
        self.toasts = ToastCenter()
        self.identity: SessionIdentity | None = None
        self.api: MessageApiClient | None = None
        self.connection_manager: ConnectionManager | None = None
        self.notifications: PushNotificationBinder | None = None
        self.sessions: list[ChatSession] = []

    @property
    def is_mounted(self) -> bool:
        return self.identity is not None

    def _transport_factory(self, identity: SessionIdentity) -> TransportFactory:
        if self._transport_factory_builder is not None:
            return self._transport_factory_builder(identity)
        return websocket_transport_factory(self.config.socket_url, identity.access_token)

    async def mount(self, identity: SessionIdentity | None) -> bool:
        """
        Start messaging for a signed-in user.

        Without a session nothing is connected. A failed push connection is
        not fatal: polling still works and connect can be retried.

        Returns:
            True when the push channel was opened
        """
        if identity is None:
            logger.debug("No session, messaging stays offline")
            return False
        if self.identity is not None:
            if self.identity.user_id == identity.user_id:
                return self.connection_manager.is_connected if self.connection_manager else False
            await self.logout()

        self.identity = identity
        self.api = MessageApiClient(
            self.config.api_base_url,
            identity.access_token,
            timeout=self.config.request_timeout_seconds,
            transport=self._http_transport,
        )
        self.connection_manager = ConnectionManager(self._transport_factory(identity))
        self.notifications = PushNotificationBinder(
            self.connection_manager, identity.role, self.toasts, preview_length=self._preview_length
        )
        self.notifications.bind()
        for session in self.sessions:
            self.notifications.register_session(session)

        connected = await self.connection_manager.connect(identity.user_id)
        logger.info("Messaging mounted", user_id=identity.user_id, role=identity.role.value, push_connected=connected)
        return connected

    async def reconnect(self) -> bool:
        """Retry the push channel after a failure or a dropped socket."""
        if self.identity is None or self.connection_manager is None:
            return False
        if not self.connection_manager.dispatcher.event_names and self.notifications is not None:
            self.notifications.bind()
        return await self.connection_manager.connect(self.identity.user_id)

    def open_chat(self, other_user_id: str | None = None, listener: StateListener | None = None) -> ChatSession:
        """Create and mount a chat screen session."""
        if self.api is None or self.identity is None:
            raise RuntimeError("MessagingApp is not mounted")
        session = ChatSession(
            self.api, self.identity.user_id, poll_interval=self.config.poll_interval_seconds, listener=listener
        )
        self.sessions.append(session)
        if self.notifications is not None:
            self.notifications.register_session(session)
        session.mount(other_user_id)
        return session

    def close_chat(self, session: ChatSession) -> None:
        session.unmount()
        if session in self.sessions:
            self.sessions.remove(session)
        if self.notifications is not None:
            self.notifications.unregister_session(session)

    def alert_producer(self) -> AlertProducer:
        if self.api is None:
            raise RuntimeError("MessagingApp is not mounted")
        return AlertProducer(self.api, self.identity)

    async def unmount(self) -> None:
        """
        Stop every chat session and close the push channel and REST client.

        A later mount() starts from scratch, for the same user or another one.
        """
        sessions = list(self.sessions)
        for session in sessions:
            self.close_chat(session)
        for session in sessions:
            await session.wait_idle()
        if self.notifications is not None:
            self.notifications.unbind()
        if self.connection_manager is not None:
            await self.connection_manager.disconnect()
        if self.api is not None:
            await self.api.aclose()
        self.api = None
        self.notifications = None
        self.connection_manager = None
        self.identity = None

    async def logout(self) -> None:
        """Unmount and forget the toasts shown to the signed-out user."""
        user_id = self.identity.user_id if self.identity else None
        await self.unmount()
        self.toasts.clear()
        logger.info("Messaging logged out", user_id=user_id)
