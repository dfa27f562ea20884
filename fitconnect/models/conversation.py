"""Conversation summaries derived from the message store."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .message import MessageType


class LastMessageSummary(BaseModel):
    """Preview of the newest message in a conversation."""

    message: str
    type: MessageType
    created_at: datetime
    is_read: bool
    sender_id: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConversationSummary(BaseModel):
    """One entry of the conversation list, keyed by the other participant."""

    user_id: str = Field(..., description="The other participant")
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    email: str = ""
    last_message: LastMessageSummary
    unread_count: int = Field(default=0, ge=0)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Pagination(BaseModel):
    """Page metadata returned with a conversation thread."""

    current_page: int
    total_pages: int
    total_messages: int
    has_next: bool
    has_prev: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def build(cls, page: int, limit: int, total: int, returned: int) -> "Pagination":
        skip = (page - 1) * limit
        return cls(
            current_page=page,
            total_pages=-(-total // limit),
            total_messages=total,
            has_next=skip + returned < total,
            has_prev=page > 1,
        )
