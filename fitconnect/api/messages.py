"""
Messaging API endpoints for FitConnect.

Every response uses the {success, message, data} envelope. Failures are
raised as FitConnect exceptions and rendered by the registered error handlers.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from ..auth.dependencies import get_current_user
from ..dependencies import MessagingServiceDep
from ..error_types import create_success_response
from ..models import SendMessageRequest, User, WorkoutMissedAlertRequest
from ..services.messaging_service import MessagingService
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

messages_router = APIRouter(prefix="/api/messages", tags=["messages"])


@messages_router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
    body: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    service: MessagingService = MessagingServiceDep,
) -> dict[str, Any]:
    """Send a chat message to the caller's trainer or assigned client."""
    message = await service.send_message(current_user, body)
    return create_success_response(
        "Mensagem enviada com sucesso", {"message": await service.serialize_message(message)}
    )


@messages_router.post("/alert/workout-missed", status_code=status.HTTP_201_CREATED)
async def send_workout_missed_alert(
    body: WorkoutMissedAlertRequest,
    current_user: User = Depends(get_current_user),
    service: MessagingService = MessagingServiceDep,
) -> dict[str, Any]:
    """Send a missed-workout alert to an assigned client (approved trainers only)."""
    message = await service.send_workout_missed_alert(current_user, body)
    return create_success_response("Alerta enviado com sucesso", {"message": await service.serialize_message(message)})


@messages_router.get("/conversation/{other_user_id}")
async def get_conversation(
    other_user_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: MessagingService = MessagingServiceDep,
) -> dict[str, Any]:
    """Messages exchanged with other_user_id in chronological order; marks them read."""
    messages, pagination = await service.get_conversation(current_user, other_user_id, page=page, limit=limit)
    return create_success_response(
        "Conversa obtida com sucesso",
        {
            "messages": [await service.serialize_message(m) for m in messages],
            "pagination": pagination.model_dump(by_alias=True),
        },
    )


@messages_router.get("/conversations")
async def list_conversations(
    current_user: User = Depends(get_current_user),
    service: MessagingService = MessagingServiceDep,
) -> dict[str, Any]:
    conversations = await service.list_conversations(current_user)
    return create_success_response(
        "Conversas obtidas com sucesso", {"conversations": [c.to_api() for c in conversations]}
    )


@messages_router.get("/unread-count")
async def unread_count(
    sender_id: str | None = Query(default=None, alias="senderId"),
    current_user: User = Depends(get_current_user),
    service: MessagingService = MessagingServiceDep,
) -> dict[str, Any]:
    count = await service.unread_count(current_user, sender_id or None)
    return create_success_response(
        "Contagem de mensagens não lidas obtida com sucesso", {"unreadCount": count}
    )


@messages_router.get("/contact")
async def get_contact(
    current_user: User = Depends(get_current_user),
    service: MessagingService = MessagingServiceDep,
) -> dict[str, Any]:
    """The caller's trainer (clients) or active assigned clients (trainers)."""
    return create_success_response("Contacto obtido com sucesso", await service.get_contacts(current_user))


@messages_router.put("/{message_id}/read")
async def mark_message_read(
    message_id: str,
    current_user: User = Depends(get_current_user),
    service: MessagingService = MessagingServiceDep,
) -> dict[str, Any]:
    message = await service.mark_read(current_user, message_id)
    return create_success_response("Mensagem marcada como lida", {"message": message.to_api()})
