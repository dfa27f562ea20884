"""
Centralized error types and constants for FitConnect.

Every failed REST call answers with the same envelope the chat screens
already understand: {"success": false, "message": <user-facing text>, "error": {...}}.
User-facing messages are in Portuguese, matching the rest of the application.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    # Authentication and Authorization
    AUTHENTICATION_FAILED = "authentication_failed"
    AUTHORIZATION_DENIED = "authorization_denied"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"

    # Validation Errors
    VALIDATION_ERROR = "validation_error"
    INVALID_INPUT = "invalid_input"
    MISSING_REQUIRED_FIELD = "missing_required_field"

    # Resource Errors
    RESOURCE_NOT_FOUND = "resource_not_found"

    # Network and Communication
    NETWORK_ERROR = "network_error"
    CONNECTION_ERROR = "connection_error"

    # Messaging
    MESSAGE_DELIVERY_ERROR = "message_delivery_error"
    SUBSCRIPTION_CONFLICT = "subscription_conflict"

    # Configuration and System
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL_ERROR = "internal_error"

    # Real-time Communication
    WEBSOCKET_ERROR = "websocket_error"


class ErrorSeverity(Enum):
    """Error severity levels for logging and handling."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorMessages:
    """Common user-facing error messages."""

    # Authentication
    AUTHENTICATION_REQUIRED = "Token de acesso necessário"
    INVALID_TOKEN = "Token inválido ou expirado"
    ACCESS_DENIED = "Acesso negado"
    TRAINER_NOT_ASSIGNED = "Acesso negado. Este cliente não está atribuído a si."
    CLIENT_TRAINER_ONLY = "Acesso negado. Só pode enviar mensagens para o seu personal trainer."
    ROLE_CANNOT_MESSAGE = "Apenas trainers e clientes podem enviar mensagens"
    APPROVED_TRAINERS_ONLY = "Apenas personal trainers aprovados podem enviar alertas"
    ROLE_CANNOT_CONTACT = "Apenas trainers e clientes podem usar esta funcionalidade"

    # Validation
    INVALID_INPUT = "Dados inválidos"
    MESSAGE_REQUIRED = "Mensagem é obrigatória"
    MESSAGE_TOO_LONG = "Mensagem deve ter entre 1 e 2000 caracteres"
    RECIPIENT_REQUIRED = "ID do destinatário inválido"
    CLIENT_ID_REQUIRED = "ID do cliente inválido"
    INVALID_PRIORITY = "Prioridade inválida"
    INVALID_MESSAGE_TYPE = "Tipo de mensagem inválido"

    # Resources
    RECIPIENT_NOT_FOUND = "Destinatário não encontrado"
    RECIPIENT_INACTIVE = "Destinatário não está ativo"
    CLIENT_NOT_FOUND = "Cliente não encontrado"
    USER_NOT_FOUND = "Utilizador não encontrado"
    MESSAGE_NOT_FOUND = "Mensagem não encontrada"
    TRAINER_NOT_FOUND = "Personal trainer não encontrado"
    NO_TRAINER_ASSIGNED = "Não tem um personal trainer atribuído"

    # Network
    CONNECTION_ERROR = "Erro de ligação ao servidor"

    # System
    INTERNAL_ERROR = "Erro interno do servidor"


def create_standard_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
) -> dict[str, Any]:
    """
    Create a standardized error response envelope.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-facing message placed in the top-level "message" (optional)
        details: Additional error details (optional)
        severity: Error severity level (optional)

    Returns:
        Envelope with success=False
    """
    return {
        "success": False,
        "message": user_friendly or message,
        "error": {
            "type": error_type.value,
            "message": message,
            "details": details or {},
            "severity": severity.value,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    }


def create_success_response(message: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create the success envelope used by every messaging endpoint."""
    return {"success": True, "message": message, "data": data or {}}


def create_websocket_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized WebSocket error frame.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)

    Returns:
        Frame in the push envelope format with event "error"
    """
    return {
        "event": "error",
        "data": {
            "error_type": error_type.value,
            "message": message,
            "user_friendly": user_friendly or message,
            "details": details or {},
        },
    }
