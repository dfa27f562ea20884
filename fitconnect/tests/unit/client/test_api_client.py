"""Tests for MessageApiClient using httpx.MockTransport."""

import json
from typing import Any

import httpx
import pytest

from fitconnect.client import api_client
from fitconnect.client.api_client import MessageApiClient
from fitconnect.error_types import ErrorMessages
from fitconnect.exceptions import (
    AuthorizationError,
    MessagingError,
    NetworkError,
    ResourceNotFoundError,
    ValidationError,
)
from fitconnect.models import MAX_MESSAGE_LENGTH

BASE_URL = "http://fitconnect.test/api"


class RecordingBackend:
    """MockTransport handler answering every request with a canned response."""

    def __init__(self, status_code: int = 200, body: dict[str, Any] | None = None) -> None:
        self.status_code = status_code
        self.body = body if body is not None else {"success": True, "data": {}}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last_json(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


def make_client(backend) -> MessageApiClient:
    return MessageApiClient(BASE_URL, "token-123", transport=httpx.MockTransport(backend))


class TestRequests:
    @pytest.mark.asyncio
    async def test_send_message_posts_body_with_bearer(self) -> None:
        backend = RecordingBackend(201, {"success": True, "data": {"message": {"id": "m1", "message": "Olá"}}})
        async with make_client(backend) as api:
            created = await api.send_message("t1", "  Olá  ")

        request = backend.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/messages"
        assert request.headers["Authorization"] == "Bearer token-123"
        assert backend.last_json == {"recipientId": "t1", "message": "Olá", "type": "chat", "priority": "medium"}
        assert created["id"] == "m1"

    @pytest.mark.asyncio
    async def test_workout_missed_alert_body(self) -> None:
        backend = RecordingBackend(201, {"success": True, "data": {"message": {"id": "a1"}}})
        async with make_client(backend) as api:
            await api.send_workout_missed_alert("client123", message="Faltou ao treino de 10/05", priority="high")

        assert backend.requests[0].url.path == "/api/messages/alert/workout-missed"
        assert backend.last_json == {"clientId": "client123", "message": "Faltou ao treino de 10/05", "priority": "high"}

    @pytest.mark.asyncio
    async def test_workout_missed_alert_with_log_and_default_message(self) -> None:
        backend = RecordingBackend(201, {"success": True, "data": {"message": {}}})
        async with make_client(backend) as api:
            await api.send_workout_missed_alert("c1", workout_log_id="log-9")

        assert backend.last_json == {"clientId": "c1", "priority": "high", "workoutLogId": "log-9"}

    @pytest.mark.asyncio
    async def test_get_conversation_passes_pagination(self) -> None:
        backend = RecordingBackend(
            body={"success": True, "data": {"messages": [{"id": "m1"}], "pagination": {"currentPage": 2}}}
        )
        async with make_client(backend) as api:
            result = await api.get_conversation("t1", page=2, limit=10)

        request = backend.requests[0]
        assert request.url.path == "/api/messages/conversation/t1"
        assert request.url.params["page"] == "2"
        assert request.url.params["limit"] == "10"
        assert result == {"messages": [{"id": "m1"}], "pagination": {"currentPage": 2}}

    @pytest.mark.asyncio
    async def test_list_endpoints(self) -> None:
        responses = {
            "/api/messages/conversations": {"conversations": [{"userId": "t1"}]},
            "/api/messages/unread-count": {"unreadCount": 4},
            "/api/messages/contact": {"contact": {"id": "t1"}, "contactType": "trainer"},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "data": responses[request.url.path]})

        async with make_client(handler) as api:
            assert await api.get_conversations() == [{"userId": "t1"}]
            assert await api.get_unread_count() == 4
            assert (await api.get_contact())["contactType"] == "trainer"

    @pytest.mark.asyncio
    async def test_unread_count_by_sender(self) -> None:
        backend = RecordingBackend(body={"success": True, "data": {"unreadCount": 1}})
        async with make_client(backend) as api:
            await api.get_unread_count(sender_id="t1")
        assert backend.requests[0].url.params["senderId"] == "t1"

    @pytest.mark.asyncio
    async def test_mark_as_read_uses_put(self) -> None:
        backend = RecordingBackend(body={"success": True, "data": {"message": {"id": "m1", "isRead": True}}})
        async with make_client(backend) as api:
            result = await api.mark_as_read("m1")
        assert backend.requests[0].method == "PUT"
        assert backend.requests[0].url.path == "/api/messages/m1/read"
        assert result["isRead"] is True


class TestClientSideValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", None])
    async def test_empty_message_rejected_before_request(self, text) -> None:
        backend = RecordingBackend()
        async with make_client(backend) as api:
            with pytest.raises(ValidationError) as exc_info:
                await api.send_message("t1", text)
        assert exc_info.value.user_friendly == ErrorMessages.MESSAGE_REQUIRED
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_long_message_rejected_before_request(self) -> None:
        backend = RecordingBackend()
        async with make_client(backend) as api:
            with pytest.raises(ValidationError):
                await api.send_message("t1", "x" * 2001)
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_missing_recipient_and_bad_priority(self) -> None:
        backend = RecordingBackend()
        async with make_client(backend) as api:
            with pytest.raises(ValidationError):
                await api.send_message("", "Olá")
            with pytest.raises(ValidationError):
                await api.send_workout_missed_alert("c1", priority="critical")
            with pytest.raises(ValidationError):
                await api.get_conversation("t1", limit=500)
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_bad_page_carries_user_message(self) -> None:
        backend = RecordingBackend()
        async with make_client(backend) as api:
            with pytest.raises(ValidationError) as exc_info:
                await api.get_conversation("t1", page=0)
        assert exc_info.value.user_friendly == ErrorMessages.INVALID_INPUT
        assert backend.requests == []

    def test_length_limit_matches_request_model(self) -> None:
        assert api_client.MAX_MESSAGE_LENGTH is MAX_MESSAGE_LENGTH


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code, expected",
        [
            (401, AuthorizationError),
            (403, AuthorizationError),
            (400, ValidationError),
            (404, ResourceNotFoundError),
            (500, MessagingError),
        ],
    )
    async def test_failure_envelopes(self, status_code, expected) -> None:
        backend = RecordingBackend(status_code, {"success": False, "message": "Mensagem do servidor"})
        async with make_client(backend) as api:
            with pytest.raises(expected) as exc_info:
                await api.get_conversations()
        assert exc_info.value.user_friendly == "Mensagem do servidor"

    @pytest.mark.asyncio
    async def test_authorization_error_keeps_status(self) -> None:
        backend = RecordingBackend(401, {"success": False, "message": ErrorMessages.INVALID_TOKEN})
        async with make_client(backend) as api:
            with pytest.raises(AuthorizationError) as exc_info:
                await api.get_unread_count()
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as api:
            with pytest.raises(NetworkError) as exc_info:
                await api.get_conversations()
        assert exc_info.value.user_friendly == ErrorMessages.CONNECTION_ERROR

    @pytest.mark.asyncio
    async def test_non_json_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        async with make_client(handler) as api:
            with pytest.raises(MessagingError) as exc_info:
                await api.get_conversations()
        assert exc_info.value.status_code == 502
