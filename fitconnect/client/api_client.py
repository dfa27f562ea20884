"""
REST client for the messaging API.

Wraps httpx.AsyncClient. Every call sends the session's bearer token and
unwraps the {success, message, data} envelope. Failures are raised as
FitConnect exceptions carrying the server's user-facing message:
- 401 and 403: AuthorizationError (the view redirects to login on 401)
- 400: ValidationError
- 404: ResourceNotFoundError
- any other failure envelope: MessagingError
- transport failures: NetworkError

Trivially invalid input is rejected before any request is made.
"""

from typing import Any

import httpx

from ..error_types import ErrorMessages
from ..exceptions import (
    AuthorizationError,
    MessagingError,
    NetworkError,
    ResourceNotFoundError,
    ValidationError,
    create_error_context,
)
from ..models import MAX_MESSAGE_LENGTH
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

VALID_PRIORITIES = ("low", "medium", "high", "urgent")
VALID_MESSAGE_TYPES = ("chat", "alert", "system")


class MessageApiClient:
    """Typed access to /messages endpoints for one session."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "base_url": base_url.rstrip("/"),
            "headers": {"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            "transport": transport,
        }
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._client = httpx.AsyncClient(**client_kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "MessageApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self, method: str, path: str, *, json: dict[str, Any] | None = None, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        context = create_error_context(operation=f"{method} {path}")
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise NetworkError(
                f"{method} {path} failed: {e}",
                context,
                connection_type="http",
                user_friendly=ErrorMessages.CONNECTION_ERROR,
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_success and body.get("success", True):
            data = body.get("data")
            return data if isinstance(data, dict) else {}

        server_message = body.get("message") or response.reason_phrase or ErrorMessages.INTERNAL_ERROR
        status_code = response.status_code
        details = {"status_code": status_code, "path": path}
        if status_code in (401, 403):
            raise AuthorizationError(
                f"{method} {path} rejected with {status_code}",
                context,
                status_code=status_code,
                user_friendly=server_message,
            )
        if status_code in (400, 422):
            raise ValidationError(f"{method} {path} rejected input", context, details=details, user_friendly=server_message)
        if status_code == 404:
            raise ResourceNotFoundError(
                f"{method} {path} not found", context, details=details, user_friendly=server_message
            )
        raise MessagingError(
            f"{method} {path} failed with {status_code}", context, status_code=status_code, user_friendly=server_message
        )

    @staticmethod
    def _require_id(value: str | None, field: str, message: str) -> str:
        if not value or not str(value).strip():
            raise ValidationError(f"{field} is required", field=field, user_friendly=message)
        return str(value).strip()

    @staticmethod
    def validate_message_body(text: str | None, *, required: bool = True) -> str | None:
        stripped = (text or "").strip()
        if not stripped:
            if required:
                raise ValidationError("message is required", field="message", user_friendly=ErrorMessages.MESSAGE_REQUIRED)
            return None
        if len(stripped) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                "message too long", field="message", value=len(stripped), user_friendly=ErrorMessages.MESSAGE_TOO_LONG
            )
        return stripped

    @staticmethod
    def _validate_priority(priority: str) -> str:
        if priority not in VALID_PRIORITIES:
            raise ValidationError(
                "invalid priority", field="priority", value=priority, user_friendly=ErrorMessages.INVALID_PRIORITY
            )
        return priority

    async def send_message(
        self, recipient_id: str, message: str, type: str = "chat", priority: str = "medium"
    ) -> dict[str, Any]:
        """POST /messages; returns the created message."""
        recipient_id = self._require_id(recipient_id, "recipientId", ErrorMessages.RECIPIENT_REQUIRED)
        body = self.validate_message_body(message)
        if type not in VALID_MESSAGE_TYPES:
            raise ValidationError(
                "invalid message type", field="type", value=type, user_friendly=ErrorMessages.INVALID_MESSAGE_TYPE
            )
        self._validate_priority(priority)
        data = await self._request(
            "POST", "/messages", json={"recipientId": recipient_id, "message": body, "type": type, "priority": priority}
        )
        return data.get("message", {})

    async def send_workout_missed_alert(
        self,
        client_id: str,
        workout_log_id: str | None = None,
        message: str | None = None,
        priority: str = "high",
    ) -> dict[str, Any]:
        """POST /messages/alert/workout-missed; returns the created alert message."""
        client_id = self._require_id(client_id, "clientId", ErrorMessages.CLIENT_ID_REQUIRED)
        payload: dict[str, Any] = {"clientId": client_id, "priority": self._validate_priority(priority)}
        body = self.validate_message_body(message, required=False)
        if body is not None:
            payload["message"] = body
        if workout_log_id:
            payload["workoutLogId"] = workout_log_id
        data = await self._request("POST", "/messages/alert/workout-missed", json=payload)
        return data.get("message", {})

    async def get_conversation(self, other_user_id: str, page: int = 1, limit: int = 50) -> dict[str, Any]:
        """GET /messages/conversation/{id}; returns {messages, pagination}."""
        other_user_id = self._require_id(other_user_id, "otherUserId", ErrorMessages.USER_NOT_FOUND)
        if page < 1 or not 1 <= limit <= 100:
            raise ValidationError(
                "invalid pagination", details={"page": page, "limit": limit}, user_friendly=ErrorMessages.INVALID_INPUT
            )
        data = await self._request(
            "GET", f"/messages/conversation/{other_user_id}", params={"page": page, "limit": limit}
        )
        return {"messages": list(data.get("messages", [])), "pagination": data.get("pagination", {})}

    async def get_conversations(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/messages/conversations")
        return list(data.get("conversations", []))

    async def get_unread_count(self, sender_id: str | None = None) -> int:
        params = {"senderId": sender_id} if sender_id else None
        data = await self._request("GET", "/messages/unread-count", params=params)
        return int(data.get("unreadCount", 0))

    async def get_contact(self) -> dict[str, Any]:
        """GET /messages/contact; {contact, contactType} or {contacts, contactType}."""
        return await self._request("GET", "/messages/contact")

    async def mark_as_read(self, message_id: str) -> dict[str, Any]:
        message_id = self._require_id(message_id, "messageId", ErrorMessages.MESSAGE_NOT_FOUND)
        data = await self._request("PUT", f"/messages/{message_id}/read")
        return data.get("message", {})
