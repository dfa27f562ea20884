"""
Per-view inbox state.

Each mounted chat view owns one InboxView. Poll responses replace the
conversation list, the open thread and the unread count wholesale through
the set_* methods; nothing is merged. Optimistic changes made while a
request is in flight are provisional and the next snapshot overwrites them
whether or not it agrees.

An optional listener is called after every change so a UI layer can re-render.
"""

from collections.abc import Callable
from copy import deepcopy
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

StateListener = Callable[["InboxView", str], None]


class InboxView:
    """Conversation list, open thread, unread counter and error banner of one view."""

    def __init__(self, user_id: str, listener: StateListener | None = None) -> None:
        self.user_id = user_id
        self.conversations: list[dict[str, Any]] = []
        self.messages: list[dict[str, Any]] = []
        self.pagination: dict[str, Any] = {}
        self.unread_count: int = 0
        self.error: str | None = None
        self.draft: str = ""
        self.active_conversation_id: str | None = None
        self._listener = listener
        self.snapshot_version = 0

    def _changed(self, field: str) -> None:
        if self._listener is not None:
            self._listener(self, field)

    def set_conversations(self, conversations: list[dict[str, Any]]) -> None:
        """Replace the conversation list with a server snapshot."""
        self.conversations = deepcopy(list(conversations))
        self.snapshot_version += 1
        self._changed("conversations")

    def set_messages(self, messages: list[dict[str, Any]], pagination: dict[str, Any] | None = None) -> None:
        """Replace the open thread with a server snapshot."""
        self.messages = deepcopy(list(messages))
        self.pagination = dict(pagination or {})
        self.snapshot_version += 1
        self._changed("messages")

    def set_unread_count(self, count: int) -> None:
        self.unread_count = max(0, int(count))
        self._changed("unread_count")

    def set_error(self, error: str | None) -> None:
        self.error = error
        self._changed("error")

    def set_draft(self, text: str) -> None:
        self.draft = text
        self._changed("draft")

    def set_active_conversation(self, other_user_id: str | None) -> None:
        if other_user_id != self.active_conversation_id:
            self.messages = []
            self.pagination = {}
        self.active_conversation_id = other_user_id
        self._changed("active_conversation")

    def apply_optimistic_message(self, recipient_id: str, text: str, provisional_id: str) -> dict[str, Any]:
        """
        Show a just-sent message before the server confirms it.

        The provisional entry carries pending=True and disappears with the
        next thread snapshot, which holds the stored copy instead.
        """
        entry = {
            "id": provisional_id,
            "senderId": self.user_id,
            "recipientId": recipient_id,
            "message": text,
            "type": "chat",
            "isRead": False,
            "pending": True,
        }
        if recipient_id == self.active_conversation_id:
            self.messages = [*self.messages, entry]
            self._changed("messages")
        return entry

    def discard_optimistic_message(self, provisional_id: str) -> None:
        before = len(self.messages)
        self.messages = [m for m in self.messages if m.get("id") != provisional_id]
        if len(self.messages) != before:
            self._changed("messages")

    def apply_optimistic_read(self, message_ids: list[str]) -> None:
        """Mark messages read locally; the next snapshot is authoritative."""
        ids = set(message_ids)
        changed = 0
        for message in self.messages:
            if message.get("id") in ids and not message.get("isRead"):
                message["isRead"] = True
                changed += 1
        if changed:
            self.unread_count = max(0, self.unread_count - changed)
            self._changed("messages")

    def message_ids(self) -> list[str]:
        return [m.get("id") for m in self.messages]
