"""
Messaging service.

Enforces who may talk to whom, creates messages and alerts in the message
store and publishes the matching push events. The push is a notification
only: a failed push is logged and never fails the request, because the
recipient's next poll picks the message up regardless.

Permission rules:
- a trainer may message only clients assigned to them
- a client may message only their own trainer
- the recipient must exist and be active
- only approved trainers may send missed-workout alerts
"""

from typing import Any

from ..config.models import MessagingConfig
from ..error_types import ErrorMessages
from ..exceptions import AuthorizationError, ResourceNotFoundError, ValidationError, create_error_context
from ..models import (
    AlertType,
    ConversationSummary,
    Message,
    MessageType,
    Pagination,
    Participant,
    SendMessageRequest,
    User,
    UserRole,
    WorkoutMissedAlertRequest,
)
from ..persistence import MessageStore, UserDirectory
from ..realtime.connection_manager import ConnectionManager
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class MessagingService:
    """Business rules of the chat and alert channel."""

    def __init__(
        self,
        store: MessageStore,
        user_directory: UserDirectory,
        connection_manager: ConnectionManager | None,
        config: MessagingConfig,
    ) -> None:
        self.store = store
        self.user_directory = user_directory
        self.connection_manager = connection_manager
        self.config = config

    async def _require_user(self, user_id: str, not_found_message: str) -> User:
        user = await self.user_directory.get_user(user_id)
        if user is None:
            raise ResourceNotFoundError(
                f"User {user_id} not found",
                create_error_context(operation="require_user"),
                resource_type="user",
                resource_id=user_id,
                user_friendly=not_found_message,
            )
        return user

    @staticmethod
    def can_converse(user: User, other: User) -> bool:
        """True when the trainer/client assignment allows the two users to exchange messages."""
        if user.role == UserRole.TRAINER:
            return other.role == UserRole.CLIENT and other.assigned_trainer_id == user.id
        if user.role == UserRole.CLIENT:
            return other.role == UserRole.TRAINER and other.id == user.assigned_trainer_id
        return False

    def _check_message_length(self, text: str) -> None:
        if len(text) > self.config.max_message_length:
            raise ValidationError(
                "Message exceeds maximum length",
                field="message",
                details={"max_length": self.config.max_message_length},
                user_friendly=ErrorMessages.MESSAGE_TOO_LONG,
            )

    async def send_message(self, sender: User, request: SendMessageRequest) -> Message:
        """
        Create a chat message from sender to request.recipient_id and push new_message.

        Raises:
            ResourceNotFoundError: Recipient does not exist
            AuthorizationError: Recipient inactive or outside the sender's assignment
            ValidationError: Body longer than the configured maximum
        """
        context = create_error_context(user_id=sender.id, operation="send_message")
        self._check_message_length(request.message)
        recipient = await self._require_user(request.recipient_id, ErrorMessages.RECIPIENT_NOT_FOUND)

        if not recipient.is_active:
            raise AuthorizationError(
                "Recipient is not active", context, user_friendly=ErrorMessages.RECIPIENT_INACTIVE
            )
        if sender.role == UserRole.TRAINER:
            denied = None if self.can_converse(sender, recipient) else ErrorMessages.TRAINER_NOT_ASSIGNED
        elif sender.role == UserRole.CLIENT:
            denied = None if self.can_converse(sender, recipient) else ErrorMessages.CLIENT_TRAINER_ONLY
        else:
            denied = ErrorMessages.ROLE_CANNOT_MESSAGE
        if denied:
            raise AuthorizationError(
                "Sender may not message recipient",
                context,
                details={"recipient_id": recipient.id, "sender_role": sender.role.value},
                user_friendly=denied,
            )

        message = await self.store.create_message(
            Message(
                sender_id=sender.id,
                recipient_id=recipient.id,
                message=request.message,
                type=request.type,
                priority=request.priority,
            )
        )
        logger.info(
            "Message sent",
            message_id=message.id,
            sender_id=sender.id,
            recipient_id=recipient.id,
            message_type=message.type.value,
        )

        await self._push(
            recipient.id,
            "new_message",
            {
                "messageId": message.id,
                "sender": Participant.from_user(sender).model_dump(),
                "message": message.message,
                "type": message.type.value,
                "priority": message.priority.value,
                "createdAt": message.created_at.isoformat(),
            },
        )
        return message

    async def send_workout_missed_alert(self, trainer: User, request: WorkoutMissedAlertRequest) -> Message:
        """
        Create a missed-workout alert from an approved trainer to one of their clients.

        Pushes workout_missed and the older trainer_alert event to the client.
        Alerts carry no idempotency key; resubmitting stores a second alert.
        """
        context = create_error_context(user_id=trainer.id, operation="send_workout_missed_alert")
        if trainer.role != UserRole.TRAINER or not trainer.is_approved:
            raise AuthorizationError(
                "Only approved trainers may send alerts", context, user_friendly=ErrorMessages.APPROVED_TRAINERS_ONLY
            )

        client = await self.user_directory.get_user(request.client_id)
        if client is None or client.role != UserRole.CLIENT:
            raise ResourceNotFoundError(
                f"Client {request.client_id} not found",
                context,
                resource_type="client",
                resource_id=request.client_id,
                user_friendly=ErrorMessages.CLIENT_NOT_FOUND,
            )
        if client.assigned_trainer_id != trainer.id:
            raise AuthorizationError(
                "Client is not assigned to trainer", context, user_friendly=ErrorMessages.TRAINER_NOT_ASSIGNED
            )

        body = request.message or self.config.default_alert_message
        self._check_message_length(body)
        message = await self.store.create_message(
            Message(
                sender_id=trainer.id,
                recipient_id=client.id,
                message=body,
                type=MessageType.ALERT,
                alert_type=AlertType.WORKOUT_MISSED,
                related_workout_log=request.workout_log_id,
                related_workout_plan=request.workout_plan_id,
                priority=request.priority,
            )
        )
        logger.info(
            "Workout missed alert sent",
            message_id=message.id,
            trainer_id=trainer.id,
            client_id=client.id,
            priority=message.priority.value,
        )

        await self._push(
            client.id,
            "workout_missed",
            {
                "messageId": message.id,
                "trainer": Participant.from_user(trainer).model_dump(),
                "clientId": client.id,
                "clientName": client.display_name,
                "reason": request.message or self.config.default_alert_reason,
                "relatedWorkoutLog": request.workout_log_id,
                "relatedWorkoutPlan": request.workout_plan_id,
                "createdAt": message.created_at.isoformat(),
            },
        )
        await self._push(
            client.id,
            "trainer_alert",
            {
                "messageId": message.id,
                "message": message.message,
                "trainerName": trainer.display_name,
                "relatedWorkoutLog": request.workout_log_id,
            },
        )
        return message

    async def get_conversation(
        self, user: User, other_user_id: str, page: int = 1, limit: int | None = None
    ) -> tuple[list[Message], Pagination]:
        """
        Return one page of a conversation in chronological order.

        Fetching a conversation marks every message the other participant
        sent to user as read. The returned page reflects the state before
        that marking; the next fetch shows the messages as read.
        """
        limit = limit or self.config.default_page_limit
        if page < 1 or not 1 <= limit <= self.config.max_page_limit:
            raise ValidationError(
                "Invalid pagination", details={"page": page, "limit": limit}, user_friendly=ErrorMessages.INVALID_INPUT
            )

        other = await self._require_user(other_user_id, ErrorMessages.USER_NOT_FOUND)
        if user.role in (UserRole.TRAINER, UserRole.CLIENT) and not self.can_converse(user, other):
            raise AuthorizationError(
                "Conversation access denied",
                create_error_context(user_id=user.id, operation="get_conversation"),
                details={"other_user_id": other_user_id},
                user_friendly=ErrorMessages.ACCESS_DENIED,
            )

        skip = (page - 1) * limit
        newest_first, total = await self.store.get_conversation(user.id, other.id, limit=limit, skip=skip)
        await self.store.mark_conversation_read(user.id, other.id)
        return list(reversed(newest_first)), Pagination.build(page, limit, total, len(newest_first))

    async def list_conversations(self, user: User) -> list[ConversationSummary]:
        return await self.store.list_conversations(user.id)

    async def unread_count(self, user: User, sender_id: str | None = None) -> int:
        return await self.store.unread_count(user.id, sender_id)

    async def get_contacts(self, user: User) -> dict[str, Any]:
        """
        Return the people user may chat with.

        Clients get their trainer under "contact", trainers get their active
        clients under "contacts".
        """
        if user.role == UserRole.CLIENT:
            if not user.assigned_trainer_id:
                raise ResourceNotFoundError(
                    "Client has no assigned trainer",
                    create_error_context(user_id=user.id, operation="get_contacts"),
                    resource_type="trainer",
                    user_friendly=ErrorMessages.NO_TRAINER_ASSIGNED,
                )
            trainer = await self._require_user(user.assigned_trainer_id, ErrorMessages.TRAINER_NOT_FOUND)
            return {"contact": trainer.to_contact(), "contactType": "trainer"}
        if user.role == UserRole.TRAINER:
            clients = await self.user_directory.get_assigned_clients(user.id)
            return {"contacts": [client.to_contact() for client in clients], "contactType": "clients"}
        raise AuthorizationError(
            "Role cannot use contacts",
            create_error_context(user_id=user.id, operation="get_contacts"),
            user_friendly=ErrorMessages.ROLE_CANNOT_CONTACT,
        )

    async def mark_read(self, user: User, message_id: str) -> Message:
        """Mark one message addressed to user as read; repeat calls are harmless."""
        message = await self.store.mark_read(message_id, user.id)
        if message is None:
            raise ResourceNotFoundError(
                f"Message {message_id} not found for recipient",
                create_error_context(user_id=user.id, operation="mark_read"),
                resource_type="message",
                resource_id=message_id,
                user_friendly=ErrorMessages.MESSAGE_NOT_FOUND,
            )
        return message

    async def serialize_message(self, message: Message) -> dict[str, Any]:
        """API representation of a message with sender and recipient names."""
        payload = message.to_api()
        for key, user_id in (("sender", message.sender_id), ("recipient", message.recipient_id)):
            user = await self.user_directory.get_user(user_id)
            payload[key] = Participant.from_user(user).model_dump() if user else {"id": user_id, "name": ""}
        return payload

    async def _push(self, user_id: str, event: str, data: dict[str, Any]) -> None:
        if self.connection_manager is None:
            return
        try:
            await self.connection_manager.send_to_user(user_id, event, data)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: push is best-effort, the stored message is authoritative
            logger.error("Push notification failed", user_id=user_id, push_event=event, error=str(e))
