"""
Messaging client: push connection, REST client, pollers and chat sessions.

Usage:
    from fitconnect.client import MessagingApp, SessionIdentity
"""

from .alert_producer import AlertProducer, AlertResult
from .api_client import MessageApiClient
from .app import MessagingApp
from .chat_session import ChatSession
from .connection_manager import ConnectionManager
from .event_dispatcher import EventDispatcher
from .inbox_poller import ConversationListPoller, PollLoop, ThreadPoller
from .notifications import PushNotificationBinder, Toast, ToastCenter
from .session import Role, SessionIdentity
from .transport import Transport, WebSocketTransport, websocket_transport_factory
from .view_state import InboxView

__all__ = [
    "AlertProducer",
    "AlertResult",
    "ChatSession",
    "ConnectionManager",
    "ConversationListPoller",
    "EventDispatcher",
    "InboxView",
    "MessageApiClient",
    "MessagingApp",
    "PollLoop",
    "PushNotificationBinder",
    "Role",
    "SessionIdentity",
    "ThreadPoller",
    "Toast",
    "ToastCenter",
    "Transport",
    "WebSocketTransport",
    "websocket_transport_factory",
]
