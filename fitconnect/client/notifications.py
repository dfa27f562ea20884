"""
Toasts raised by push events.

Push events never change what a chat view shows. They raise a toast and
ask every registered chat session to poll now; the poll brings the data.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from ..structured_logging.enhanced_logging_config import get_logger
from .connection_manager import ConnectionManager
from .session import Role

logger = get_logger(__name__)

DEFAULT_PREVIEW_LENGTH = 50


@dataclass
class Toast:
    """A transient notification as shown by the UI layer."""

    level: str
    title: str
    body: str
    detail: str | None = None
    link: str | None = None
    auto_close_ms: int = 6000
    event: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ToastCenter:
    """Bounded list of the most recent toasts, newest last."""

    def __init__(self, max_toasts: int = 20, listener: Callable[[Toast], None] | None = None) -> None:
        self._toasts: deque[Toast] = deque(maxlen=max_toasts)
        self._listener = listener

    def push(self, toast: Toast) -> None:
        self._toasts.append(toast)
        if self._listener is not None:
            self._listener(toast)

    def items(self) -> list[Toast]:
        return list(self._toasts)

    def latest(self) -> Toast | None:
        return self._toasts[-1] if self._toasts else None

    def clear(self) -> None:
        self._toasts.clear()

    def __len__(self) -> int:
        return len(self._toasts)


class Refreshable(Protocol):
    def request_refresh(self) -> None: ...


def preview(text: str, length: int = DEFAULT_PREVIEW_LENGTH) -> str:
    """Cut a message body down for a toast."""
    if len(text) <= length:
        return text
    return f"{text[:length]}..."


class PushNotificationBinder:
    """
    Binds the toast handlers that fit the session's role.

    Everyone gets new_message. Clients also get trainer_alert, trainers get
    workout_missed with a link to the chat with that client.
    """

    def __init__(
        self,
        connection_manager: ConnectionManager,
        role: Role,
        toasts: ToastCenter,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
    ) -> None:
        self.connection_manager = connection_manager
        self.role = Role(role)
        self.toasts = toasts
        self.preview_length = preview_length
        self._sessions: list[Refreshable] = []
        self._bound: list[str] = []

    def register_session(self, session: Refreshable) -> None:
        if session not in self._sessions:
            self._sessions.append(session)

    def unregister_session(self, session: Refreshable) -> None:
        if session in self._sessions:
            self._sessions.remove(session)

    def bind(self) -> list[str]:
        """Register the handlers for this role; returns the bound event names."""
        handlers = {"new_message": self.on_new_message}
        if self.role == Role.CLIENT:
            handlers["trainer_alert"] = self.on_trainer_alert
        elif self.role == Role.TRAINER:
            handlers["workout_missed"] = self.on_workout_missed

        for event_name, handler in handlers.items():
            self.connection_manager.on(event_name, handler)
        self._bound = list(handlers)
        logger.debug("Push notification handlers bound", role=self.role.value, events=self._bound)
        return self._bound

    def unbind(self) -> None:
        for event_name in self._bound:
            self.connection_manager.off(event_name)
        self._bound = []

    def refresh_sessions(self) -> None:
        for session in list(self._sessions):
            session.request_refresh()

    def on_new_message(self, data: dict[str, Any]) -> None:
        sender = data.get("sender") or {}
        self.toasts.push(
            Toast(
                level="info",
                title="Nova mensagem",
                body=sender.get("name", ""),
                detail=preview(str(data.get("message", "")), self.preview_length),
                auto_close_ms=6000,
                event="new_message",
            )
        )
        self.refresh_sessions()

    def on_trainer_alert(self, data: dict[str, Any]) -> None:
        self.toasts.push(
            Toast(
                level="warning",
                title="Alerta do seu Personal Trainer",
                body=str(data.get("message", "")),
                link="/chat",
                auto_close_ms=10000,
                event="trainer_alert",
            )
        )
        self.refresh_sessions()

    def on_workout_missed(self, data: dict[str, Any]) -> None:
        client_id = data.get("clientId")
        self.toasts.push(
            Toast(
                level="warning",
                title="Treino não cumprido",
                body=f"{data.get('clientName', '')} não completou o treino",
                detail=f"Motivo: {data.get('reason', '')}",
                link=f"/trainer/chat?clientId={client_id}" if client_id else None,
                auto_close_ms=8000,
                event="workout_missed",
            )
        )
