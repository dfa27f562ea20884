"""
Message models.

A Message is immutable apart from its read state, which only ever moves
from unread to read. The store is the single place allowed to flip it.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageType(str, Enum):
    """Kind of message carried by the chat channel."""

    CHAT = "chat"
    ALERT = "alert"
    SYSTEM = "system"


class Priority(str, Enum):
    """Message priority, highest last."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AlertType(str, Enum):
    """Sub-type of an alert message."""

    WORKOUT_MISSED = "workout_missed"
    WORKOUT_REMINDER = "workout_reminder"
    PLAN_UPDATE = "plan_update"
    OTHER = "other"


def _new_message_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(UTC)


class Message(BaseModel):
    """A stored chat message or alert."""

    id: str = Field(default_factory=_new_message_id, description="Server-assigned message id")
    sender_id: str = Field(..., description="Author of the message")
    recipient_id: str = Field(..., description="Addressee of the message")
    message: str = Field(..., description="Message body")
    type: MessageType = Field(default=MessageType.CHAT)
    priority: Priority = Field(default=Priority.MEDIUM)
    alert_type: AlertType | None = Field(default=None, description="Set for alert messages")
    related_workout_log: str | None = Field(default=None, description="Workout log the alert refers to")
    related_workout_plan: str | None = Field(default=None, description="Workout plan the alert refers to")
    is_read: bool = Field(default=False)
    read_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=_utc_now)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def involves(self, user_id: str, other_user_id: str) -> bool:
        """True when the message belongs to the conversation between the two users."""
        return (self.sender_id == user_id and self.recipient_id == other_user_id) or (
            self.sender_id == other_user_id and self.recipient_id == user_id
        )

    def counterpart_of(self, user_id: str) -> str:
        """Id of the other participant from user_id's point of view."""
        return self.recipient_id if self.sender_id == user_id else self.sender_id

    def to_api(self) -> dict[str, Any]:
        """camelCase JSON representation used on the REST surface."""
        return self.model_dump(mode="json", by_alias=True)
