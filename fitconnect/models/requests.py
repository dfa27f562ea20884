"""
Request schemas for the messaging REST surface.

Validation failures raise ValueError with the user-facing message, which the
request validation handler turns into a 400 envelope.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..error_types import ErrorMessages
from .message import MessageType, Priority

MAX_MESSAGE_LENGTH = 2000


def _validate_body(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(ErrorMessages.MESSAGE_REQUIRED)
    if len(value) > MAX_MESSAGE_LENGTH:
        raise ValueError(ErrorMessages.MESSAGE_TOO_LONG)
    return value


class SendMessageRequest(BaseModel):
    """Body of POST /api/messages."""

    recipient_id: str = Field(..., description="Recipient user id")
    message: str = Field(..., description="Message body")
    type: MessageType = Field(default=MessageType.CHAT)
    priority: Priority = Field(default=Priority.MEDIUM)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @field_validator("recipient_id")
    @classmethod
    def validate_recipient(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError(ErrorMessages.RECIPIENT_REQUIRED)
        return v

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        return _validate_body(v)


class WorkoutMissedAlertRequest(BaseModel):
    """Body of POST /api/messages/alert/workout-missed."""

    client_id: str = Field(..., description="Client who missed the workout")
    workout_log_id: str | None = Field(default=None, description="Missed workout log")
    workout_plan_id: str | None = Field(default=None, description="Plan the missed workout belongs to")
    message: str | None = Field(default=None, description="Custom alert text; a default is used when absent")
    priority: Priority = Field(default=Priority.HIGH)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @field_validator("client_id")
    @classmethod
    def validate_client(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError(ErrorMessages.CLIENT_ID_REQUIRED)
        return v

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str | None) -> str | None:
        # Blank text falls back to the default alert message
        if v is None or not v.strip():
            return None
        return _validate_body(v)
