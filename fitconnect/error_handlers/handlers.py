"""
FastAPI exception handlers producing the standard error envelope.

Every failure leaving the REST surface is rendered through
create_standard_error_response so the chat screens only ever parse one shape.
"""

import traceback
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..error_types import ErrorMessages, ErrorSeverity, ErrorType, create_standard_error_response
from ..exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    FitConnectError,
    LoggedHTTPException,
    MessagingError,
    NetworkError,
    ResourceNotFoundError,
    SubscriptionConflictError,
    ValidationError,
    create_error_context,
    handle_exception,
)
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# (status code, error type, severity) per exception class
_ERROR_MAPPING: dict[type[FitConnectError], tuple[int, ErrorType, ErrorSeverity]] = {
    AuthenticationError: (401, ErrorType.AUTHENTICATION_FAILED, ErrorSeverity.LOW),
    AuthorizationError: (403, ErrorType.AUTHORIZATION_DENIED, ErrorSeverity.LOW),
    ValidationError: (400, ErrorType.VALIDATION_ERROR, ErrorSeverity.LOW),
    ResourceNotFoundError: (404, ErrorType.RESOURCE_NOT_FOUND, ErrorSeverity.LOW),
    MessagingError: (500, ErrorType.MESSAGE_DELIVERY_ERROR, ErrorSeverity.MEDIUM),
    SubscriptionConflictError: (409, ErrorType.SUBSCRIPTION_CONFLICT, ErrorSeverity.LOW),
    NetworkError: (503, ErrorType.NETWORK_ERROR, ErrorSeverity.HIGH),
    ConfigurationError: (500, ErrorType.CONFIGURATION_ERROR, ErrorSeverity.CRITICAL),
}

_STATUS_MAPPING: dict[int, tuple[ErrorType, str]] = {
    400: (ErrorType.INVALID_INPUT, ErrorMessages.INVALID_INPUT),
    401: (ErrorType.AUTHENTICATION_FAILED, ErrorMessages.AUTHENTICATION_REQUIRED),
    403: (ErrorType.AUTHORIZATION_DENIED, ErrorMessages.ACCESS_DENIED),
    404: (ErrorType.RESOURCE_NOT_FOUND, ErrorMessages.USER_NOT_FOUND),
    422: (ErrorType.VALIDATION_ERROR, ErrorMessages.INVALID_INPUT),
}


def _classify(error: FitConnectError) -> tuple[int, ErrorType, ErrorSeverity]:
    for error_class in type(error).__mro__:
        if error_class in _ERROR_MAPPING:
            return _ERROR_MAPPING[error_class]
    return 500, ErrorType.INTERNAL_ERROR, ErrorSeverity.HIGH


def _request_method(request: Request) -> str:
    return getattr(request, "method", "WEBSOCKET")


async def fitconnect_exception_handler(request: Request, exc: FitConnectError) -> JSONResponse:
    """
    Handle FitConnect-specific exceptions.

    Args:
        request: FastAPI request object
        exc: FitConnect exception

    Returns:
        JSONResponse with the error envelope
    """
    if not exc.context.request_id:
        exc.context.request_id = str(request.url)

    status_code, error_type, severity = _classify(exc)
    content = create_standard_error_response(
        error_type=error_type,
        message=exc.message,
        user_friendly=exc.user_friendly,
        details=exc.details,
        severity=severity,
    )

    logger.info(
        "FitConnect exception handled",
        error_type=exc.__class__.__name__,
        path=str(request.url),
        method=_request_method(request),
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=content)


def _http_error_content(exc: HTTPException | StarletteHTTPException) -> dict[str, Any]:
    error_type, fallback = _STATUS_MAPPING.get(exc.status_code, (ErrorType.INTERNAL_ERROR, ErrorMessages.INTERNAL_ERROR))
    # A string detail raised by a route is already user-facing
    user_friendly = exc.detail if isinstance(exc.detail, str) and exc.detail else fallback
    return create_standard_error_response(
        error_type=error_type,
        message=str(exc.detail),
        user_friendly=user_friendly,
        details={"status_code": exc.status_code},
        severity=ErrorSeverity.MEDIUM,
    )


async def logged_http_exception_handler(request: Request, exc: LoggedHTTPException) -> JSONResponse:
    """Render a LoggedHTTPException; the exception already logged itself."""
    logger.debug(
        "LoggedHTTPException handled",
        status_code=exc.status_code,
        path=str(request.url),
        method=_request_method(request),
    )
    return JSONResponse(status_code=exc.status_code, content=_http_error_content(exc), headers=exc.headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle FastAPI and Starlette HTTP exceptions."""
    logger.warning(
        "HTTP exception handled",
        status_code=exc.status_code,
        detail=exc.detail,
        path=str(request.url),
        method=_request_method(request),
    )
    return JSONResponse(
        status_code=exc.status_code, content=_http_error_content(exc), headers=getattr(exc, "headers", None)
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Convert request body and query validation failures into a 400 envelope.

    The first failing field's message becomes the user-facing text, the full
    list is kept under details.errors.
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")),
            "message": error.get("msg", ""),
            "type": error.get("type", "unknown"),
        }
        for error in exc.errors()
    ]
    user_friendly = ErrorMessages.INVALID_INPUT
    if errors:
        first = errors[0]["message"]
        # Custom validators raise "Value error, <message>"
        user_friendly = first.removeprefix("Value error, ") or user_friendly

    logger.info("Request validation failed", path=str(request.url), error_count=len(errors))
    content = create_standard_error_response(
        error_type=ErrorType.VALIDATION_ERROR,
        message="Request validation failed",
        user_friendly=user_friendly,
        details={"errors": errors},
        severity=ErrorSeverity.LOW,
    )
    return JSONResponse(status_code=400, content=content)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Convert any other exception into a FitConnect error and render it."""
    context = create_error_context(
        request_id=str(request.url),
        metadata={"path": str(request.url), "method": _request_method(request)},
    )
    error = handle_exception(exc, context)
    logger.error(
        "Unhandled exception converted to FitConnect error",
        original_type=type(exc).__name__,
        original_message=str(exc),
        path=str(request.url),
        traceback=traceback.format_exc(),
    )
    content = create_standard_error_response(
        error_type=ErrorType.INTERNAL_ERROR,
        message=error.message,
        user_friendly=ErrorMessages.INTERNAL_ERROR,
        severity=ErrorSeverity.HIGH,
    )
    return JSONResponse(status_code=500, content=content)


def register_error_handlers(app: Any) -> None:
    """
    Register all error handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(FitConnectError, fitconnect_exception_handler)
    # LoggedHTTPException must be registered before the generic HTTPException
    app.add_exception_handler(LoggedHTTPException, logged_http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Error handlers registered with FastAPI application")
