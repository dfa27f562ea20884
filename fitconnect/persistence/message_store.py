"""
In-memory asynchronous message store.

Holds every message exchanged between trainers and clients together with
its read state. All mutations run under a single asyncio.Lock so that the
conversation aggregates always observe a consistent snapshot.

Read state is monotonic: mark_read and mark_conversation_read only ever move
a message from unread to read, and no operation resets it.
"""

import asyncio
from datetime import UTC, datetime

from ..models import ConversationSummary, LastMessageSummary, Message
from ..structured_logging.enhanced_logging_config import get_logger
from .user_directory import UserDirectory

logger = get_logger(__name__)


class MessageStore:
    """Persists messages and read status."""

    def __init__(self, user_directory: UserDirectory | None = None) -> None:
        self._user_directory = user_directory
        # Insertion order is creation order
        self._messages: dict[str, Message] = {}
        self._lock = asyncio.Lock()

    async def create_message(self, message: Message) -> Message:
        """Store a new message and return it."""
        async with self._lock:
            self._messages[message.id] = message
        logger.debug(
            "Message stored",
            message_id=message.id,
            sender_id=message.sender_id,
            recipient_id=message.recipient_id,
            message_type=message.type.value,
        )
        return message

    async def get_message(self, message_id: str) -> Message | None:
        async with self._lock:
            return self._messages.get(message_id)

    def _newest_first(self) -> list[Message]:
        return list(reversed(self._messages.values()))

    async def get_conversation(
        self, user_id: str, other_user_id: str, limit: int = 50, skip: int = 0
    ) -> tuple[list[Message], int]:
        """
        Return one page of the conversation between two users.

        Args:
            user_id: The requesting user
            other_user_id: The other participant
            limit: Maximum number of messages on the page
            skip: Number of newest messages to skip

        Returns:
            (page, total) where page is newest-first and total counts the whole conversation
        """
        async with self._lock:
            thread = [m for m in self._newest_first() if m.involves(user_id, other_user_id)]
        return thread[skip : skip + limit], len(thread)

    async def mark_conversation_read(self, user_id: str, other_user_id: str) -> int:
        """Mark every unread message sent by other_user_id to user_id as read."""
        now = datetime.now(UTC)
        updated = 0
        async with self._lock:
            for message_id, message in self._messages.items():
                if message.sender_id == other_user_id and message.recipient_id == user_id and not message.is_read:
                    self._messages[message_id] = message.model_copy(update={"is_read": True, "read_at": now})
                    updated += 1
        if updated:
            logger.debug("Conversation marked read", user_id=user_id, other_user_id=other_user_id, count=updated)
        return updated

    async def mark_read(self, message_id: str, recipient_id: str) -> Message | None:
        """
        Mark a single message as read on behalf of its recipient.

        Returns None when no message with that id is addressed to recipient_id.
        An already read message is returned unchanged, keeping its original read_at.
        """
        async with self._lock:
            message = self._messages.get(message_id)
            if message is None or message.recipient_id != recipient_id:
                return None
            if message.is_read:
                return message
            updated = message.model_copy(update={"is_read": True, "read_at": datetime.now(UTC)})
            self._messages[message_id] = updated
        logger.debug("Message marked read", message_id=message_id, recipient_id=recipient_id)
        return updated

    async def unread_count(self, user_id: str, sender_id: str | None = None) -> int:
        """Count unread messages addressed to user_id, optionally only from sender_id."""
        async with self._lock:
            return sum(
                1
                for m in self._messages.values()
                if m.recipient_id == user_id and not m.is_read and (sender_id is None or m.sender_id == sender_id)
            )

    async def list_conversations(self, user_id: str) -> list[ConversationSummary]:
        """
        Group the user's messages by counterpart.

        Each summary carries the newest message and the number of unread
        messages addressed to user_id. Counterparts unknown to the user
        directory are skipped. The list is sorted newest conversation first.
        """
        async with self._lock:
            messages = self._newest_first()

        latest: dict[str, Message] = {}
        unread: dict[str, int] = {}
        for message in messages:
            if user_id not in (message.sender_id, message.recipient_id):
                continue
            other = message.counterpart_of(user_id)
            latest.setdefault(other, message)
            if message.recipient_id == user_id and not message.is_read:
                unread[other] = unread.get(other, 0) + 1

        summaries = []
        # latest preserves newest-first order of first appearance
        for other_id, last in latest.items():
            user = await self._user_directory.get_user(other_id) if self._user_directory else None
            if self._user_directory is not None and user is None:
                logger.debug("Skipping conversation with unknown user", user_id=user_id, other_user_id=other_id)
                continue
            summaries.append(
                ConversationSummary(
                    user_id=other_id,
                    first_name=user.first_name if user else "",
                    last_name=user.last_name if user else "",
                    username=user.username if user else "",
                    email=user.email if user else "",
                    last_message=LastMessageSummary(
                        message=last.message,
                        type=last.type,
                        created_at=last.created_at,
                        is_read=last.is_read,
                        sender_id=last.sender_id,
                    ),
                    unread_count=unread.get(other_id, 0),
                )
            )
        return summaries

    async def count(self) -> int:
        async with self._lock:
            return len(self._messages)
