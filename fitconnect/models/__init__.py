"""Pydantic models for FitConnect messaging."""

from .conversation import ConversationSummary, LastMessageSummary, Pagination
from .message import AlertType, Message, MessageType, Priority
from .requests import MAX_MESSAGE_LENGTH, SendMessageRequest, WorkoutMissedAlertRequest
from .user import Participant, User, UserRole

__all__ = [
    "AlertType",
    "ConversationSummary",
    "LastMessageSummary",
    "MAX_MESSAGE_LENGTH",
    "Message",
    "MessageType",
    "Pagination",
    "Participant",
    "Priority",
    "SendMessageRequest",
    "User",
    "UserRole",
    "WorkoutMissedAlertRequest",
]
