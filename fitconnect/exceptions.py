"""
Exception hierarchy and error handling utilities for FitConnect.

Errors raised on the server are converted into the standard response
envelope by the handlers in fitconnect.error_handlers. Errors raised by the
client layer carry a user_friendly string a chat screen can show verbatim.
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from fastapi import HTTPException

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """
    Contextual information for error handling.

    Provides structured context for error reporting and debugging.
    """

    user_id: str | None = None
    session_id: str | None = None
    request_id: str | None = None
    operation: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "user_id": self.user_id,
            "session_id": self.session_id,
            "request_id": self.request_id,
            "operation": self.operation,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class FitConnectError(Exception):
    """
    Base exception for all FitConnect errors.

    Provides structured error handling with context and metadata
    for proper error categorization and debugging.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize FitConnect error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self):
        """Log the error with structured context."""
        log_method = getattr(logger, self.log_level, logger.error)
        log_method(
            "FitConnect error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class AuthenticationError(FitConnectError):
    """Missing, malformed or expired bearer credential."""

    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, auth_type: str = "bearer", **kwargs):
        super().__init__(message, context, **kwargs)
        self.auth_type = auth_type
        self.details["auth_type"] = auth_type


class AuthorizationError(FitConnectError):
    """
    The caller is authenticated but not allowed to perform the action.

    On the client this is also raised for HTTP 401 responses, so a view can
    show the message and hand off to the login redirect.
    """

    log_level = "warning"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        status_code: int | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.status_code = status_code
        if status_code is not None:
            self.details["status_code"] = status_code


class ValidationError(FitConnectError):
    """Invalid input, rejected before any side effect."""

    log_level = "info"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        field: str | None = None,
        value: Any | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.field = field
        self.value = value
        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = str(value)


class ResourceNotFoundError(FitConnectError):
    """Resource not found errors."""

    log_level = "warning"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id
        if resource_type:
            self.details["resource_type"] = resource_type
        if resource_id:
            self.details["resource_id"] = resource_id


class NetworkError(FitConnectError):
    """Transport-level failure: refused connection, dropped socket, unreachable API."""

    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, connection_type: str = "unknown", **kwargs):
        super().__init__(message, context, **kwargs)
        self.connection_type = connection_type
        self.details["connection_type"] = connection_type


class MessagingError(FitConnectError):
    """A REST call was answered with a failure envelope."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        status_code: int | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.status_code = status_code
        if status_code is not None:
            self.details["status_code"] = status_code


class SubscriptionConflictError(FitConnectError):
    """A strict subscription tried to bind an event name that already has a handler."""

    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, event_name: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.event_name = event_name
        if event_name:
            self.details["event_name"] = event_name


class ConfigurationError(FitConnectError):
    """Configuration and setup errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key


class LoggedHTTPException(HTTPException):
    """HTTPException that records a structured log line when raised."""

    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        context: ErrorContext | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.context = context or ErrorContext()
        log_method = logger.warning if status_code < 500 else logger.error
        log_method(
            "HTTP exception raised",
            status_code=status_code,
            detail=detail,
            context=self.context.to_dict(),
        )


def create_error_context(**kwargs) -> ErrorContext:
    """
    Create an error context with the given parameters.

    Args:
        **kwargs: Context parameters

    Returns:
        ErrorContext object
    """
    return ErrorContext(**kwargs)


def handle_exception(exc: Exception, context: ErrorContext | None = None) -> FitConnectError:
    """
    Convert a generic exception to a FitConnect error.

    Args:
        exc: The original exception
        context: Error context

    Returns:
        FitConnectError instance
    """
    if isinstance(exc, FitConnectError):
        return exc

    if isinstance(exc, ValueError | TypeError):
        return ValidationError(str(exc), context, details={"original_type": type(exc).__name__})
    if isinstance(exc, KeyError | LookupError):
        return ResourceNotFoundError(str(exc), context, details={"original_type": type(exc).__name__})
    if isinstance(exc, ConnectionError | TimeoutError | OSError):
        return NetworkError(str(exc), context, details={"original_type": type(exc).__name__})
    return FitConnectError(
        str(exc), context, details={"original_type": type(exc).__name__, "traceback": traceback.format_exc()}
    )
