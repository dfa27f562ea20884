"""Tests for the MessagingService permission rules and push side effects."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fitconnect.error_types import ErrorMessages
from fitconnect.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from fitconnect.models import MessageType, Priority, SendMessageRequest, WorkoutMissedAlertRequest
from fitconnect.realtime import ConnectionManager
from fitconnect.services.messaging_service import MessagingService


@pytest.fixture
def push() -> MagicMock:
    manager = MagicMock(spec=ConnectionManager)
    manager.send_to_user = AsyncMock(return_value={"delivered": 1, "failed": 0})
    return manager


@pytest.fixture
def service(message_store, user_directory, push, messaging_config) -> MessagingService:
    return MessagingService(message_store, user_directory, push, messaging_config)


def user(directory, user_id):
    return directory.get_user_sync(user_id)


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_trainer_to_assigned_client(self, service, user_directory, push) -> None:
        message = await service.send_message(
            user(user_directory, "t1"), SendMessageRequest(recipient_id="c1", message="Bom treino!")
        )
        assert message.sender_id == "t1"
        assert message.type == MessageType.CHAT
        push.send_to_user.assert_awaited_once()
        recipient, event, data = push.send_to_user.await_args.args
        assert (recipient, event) == ("c1", "new_message")
        assert data["sender"] == {"id": "t1", "name": "Ana Silva"}
        assert data["message"] == "Bom treino!"

    @pytest.mark.asyncio
    async def test_client_to_own_trainer(self, service, user_directory) -> None:
        message = await service.send_message(user(user_directory, "c1"), SendMessageRequest(recipient_id="t1", message="Olá"))
        assert message.recipient_id == "t1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "sender, recipient, expected",
        [
            ("t1", "c2", ErrorMessages.TRAINER_NOT_ASSIGNED),
            ("c1", "t2", ErrorMessages.CLIENT_TRAINER_ONLY),
            ("c1", "c2", ErrorMessages.CLIENT_TRAINER_ONLY),
            ("a1", "c1", ErrorMessages.ROLE_CANNOT_MESSAGE),
            ("t1", "c3", ErrorMessages.RECIPIENT_INACTIVE),
        ],
    )
    async def test_denied(self, service, user_directory, message_store, push, sender, recipient, expected) -> None:
        with pytest.raises(AuthorizationError) as exc_info:
            await service.send_message(user(user_directory, sender), SendMessageRequest(recipient_id=recipient, message="x"))
        assert exc_info.value.user_friendly == expected
        assert await message_store.count() == 0
        push.send_to_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, service, user_directory) -> None:
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await service.send_message(user(user_directory, "t1"), SendMessageRequest(recipient_id="zz", message="x"))
        assert exc_info.value.user_friendly == ErrorMessages.RECIPIENT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_configured_length_limit(self, message_store, user_directory, push, messaging_config) -> None:
        strict = MessagingService(
            message_store, user_directory, push, messaging_config.model_copy(update={"max_message_length": 5})
        )
        with pytest.raises(ValidationError):
            await strict.send_message(user(user_directory, "t1"), SendMessageRequest(recipient_id="c1", message="too long"))

    @pytest.mark.asyncio
    async def test_push_failure_does_not_fail_send(self, service, user_directory, message_store, push) -> None:
        push.send_to_user.side_effect = RuntimeError("boom")
        message = await service.send_message(user(user_directory, "t1"), SendMessageRequest(recipient_id="c1", message="x"))
        assert await message_store.get_message(message.id) is not None

    @pytest.mark.asyncio
    async def test_without_push_channel(self, message_store, user_directory, messaging_config) -> None:
        quiet = MessagingService(message_store, user_directory, None, messaging_config)
        await quiet.send_message(user(user_directory, "c1"), SendMessageRequest(recipient_id="t1", message="x"))
        assert await message_store.count() == 1


class TestWorkoutMissedAlert:
    @pytest.mark.asyncio
    async def test_default_message_and_pushes(self, service, user_directory, push, messaging_config) -> None:
        message = await service.send_workout_missed_alert(
            user(user_directory, "t1"), WorkoutMissedAlertRequest(client_id="c1", workout_log_id="log-1")
        )
        assert message.type == MessageType.ALERT
        assert message.priority == Priority.HIGH
        assert message.message == messaging_config.default_alert_message
        assert message.related_workout_log == "log-1"

        events = [call.args[1] for call in push.send_to_user.await_args_list]
        assert events == ["workout_missed", "trainer_alert"]
        missed = push.send_to_user.await_args_list[0].args[2]
        assert missed["clientName"] == "Diogo Ferreira"
        assert missed["reason"] == messaging_config.default_alert_reason

    @pytest.mark.asyncio
    async def test_custom_message_is_reason(self, service, user_directory, push) -> None:
        await service.send_workout_missed_alert(
            user(user_directory, "t1"), WorkoutMissedAlertRequest(client_id="c1", message="Faltou à corrida")
        )
        assert push.send_to_user.await_args_list[0].args[2]["reason"] == "Faltou à corrida"

    @pytest.mark.asyncio
    async def test_resubmission_stores_second_alert(self, service, user_directory, message_store) -> None:
        request = WorkoutMissedAlertRequest(client_id="c1")
        await service.send_workout_missed_alert(user(user_directory, "t1"), request)
        await service.send_workout_missed_alert(user(user_directory, "t1"), request)
        assert await message_store.count() == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "sender, client_id, error, expected",
        [
            ("t3", "c4", AuthorizationError, ErrorMessages.APPROVED_TRAINERS_ONLY),
            ("c1", "c1", AuthorizationError, ErrorMessages.APPROVED_TRAINERS_ONLY),
            ("t1", "c2", AuthorizationError, ErrorMessages.TRAINER_NOT_ASSIGNED),
            ("t1", "t2", ResourceNotFoundError, ErrorMessages.CLIENT_NOT_FOUND),
            ("t1", "zz", ResourceNotFoundError, ErrorMessages.CLIENT_NOT_FOUND),
        ],
    )
    async def test_rejected(self, service, user_directory, sender, client_id, error, expected) -> None:
        with pytest.raises(error) as exc_info:
            await service.send_workout_missed_alert(
                user(user_directory, sender), WorkoutMissedAlertRequest(client_id=client_id)
            )
        assert exc_info.value.user_friendly == expected


class TestConversation:
    @pytest.mark.asyncio
    async def test_chronological_and_marks_read(self, service, user_directory, message_store) -> None:
        trainer, client = user(user_directory, "t1"), user(user_directory, "c1")
        for text in ("um", "dois", "três"):
            await service.send_message(trainer, SendMessageRequest(recipient_id="c1", message=text))

        messages, pagination = await service.get_conversation(client, "t1")
        assert [m.message for m in messages] == ["um", "dois", "três"]
        assert not any(m.is_read for m in messages)
        assert pagination.total_messages == 3
        assert await message_store.unread_count("c1") == 0

        again, _ = await service.get_conversation(client, "t1")
        assert all(m.is_read for m in again)

    @pytest.mark.asyncio
    async def test_paging(self, service, user_directory) -> None:
        trainer = user(user_directory, "t1")
        for i in range(5):
            await service.send_message(trainer, SendMessageRequest(recipient_id="c1", message=f"m{i}"))
        messages, pagination = await service.get_conversation(trainer, "c1", page=2, limit=2)
        assert [m.message for m in messages] == ["m1", "m2"]
        assert pagination.has_next and pagination.has_prev

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page, limit", [(0, 10), (1, -1), (1, 101)])
    async def test_invalid_paging(self, service, user_directory, page, limit) -> None:
        with pytest.raises(ValidationError):
            await service.get_conversation(user(user_directory, "t1"), "c1", page=page, limit=limit)

    @pytest.mark.asyncio
    async def test_outsider_denied(self, service, user_directory) -> None:
        with pytest.raises(AuthorizationError):
            await service.get_conversation(user(user_directory, "c2"), "t1")

    @pytest.mark.asyncio
    async def test_admin_may_read(self, service, user_directory) -> None:
        messages, _ = await service.get_conversation(user(user_directory, "a1"), "t1")
        assert messages == []


class TestContactsAndReads:
    @pytest.mark.asyncio
    async def test_client_contact(self, service, user_directory) -> None:
        result = await service.get_contacts(user(user_directory, "c1"))
        assert result["contactType"] == "trainer"
        assert result["contact"]["id"] == "t1"

    @pytest.mark.asyncio
    async def test_trainer_contacts_only_active(self, service, user_directory) -> None:
        result = await service.get_contacts(user(user_directory, "t1"))
        assert result["contactType"] == "clients"
        assert [c["id"] for c in result["contacts"]] == ["c1"]

    @pytest.mark.asyncio
    async def test_client_without_trainer(self, service, user_directory) -> None:
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await service.get_contacts(user(user_directory, "c5"))
        assert exc_info.value.user_friendly == ErrorMessages.NO_TRAINER_ASSIGNED

    @pytest.mark.asyncio
    async def test_admin_has_no_contacts(self, service, user_directory) -> None:
        with pytest.raises(AuthorizationError):
            await service.get_contacts(user(user_directory, "a1"))

    @pytest.mark.asyncio
    async def test_mark_read(self, service, user_directory) -> None:
        message = await service.send_message(user(user_directory, "t1"), SendMessageRequest(recipient_id="c1", message="x"))
        assert (await service.mark_read(user(user_directory, "c1"), message.id)).is_read
        with pytest.raises(ResourceNotFoundError):
            await service.mark_read(user(user_directory, "t1"), message.id)

    @pytest.mark.asyncio
    async def test_serialize_message_names(self, service, user_directory) -> None:
        message = await service.send_message(user(user_directory, "c1"), SendMessageRequest(recipient_id="t1", message="x"))
        payload = await service.serialize_message(message)
        assert payload["sender"] == {"id": "c1", "name": "Diogo Ferreira"}
        assert payload["recipient"] == {"id": "t1", "name": "Ana Silva"}
