"""
Request logging middleware for FitConnect.

Pure ASGI middleware that binds a correlation id to the structlog context for
the duration of each HTTP request and logs start, completion and failures.
The correlation id is taken from the X-Correlation-ID header when present
and echoed back on the response.
"""

import time
import uuid

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..structured_logging.enhanced_logging_config import get_logger
from ..structured_logging.logging_context import bind_request_context, clear_request_context

logger = get_logger(__name__)

CORRELATION_HEADER = "x-correlation-id"


class RequestLoggingMiddleware:
    """Access logging with per-request correlation ids."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        bind_request_context(correlation_id=correlation_id, method=request.method, path=request.url.path)
        start_time = time.time()
        status_code = 500

        async def send_with_logging(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                headers = list(message.get("headers", []))
                headers.append((CORRELATION_HEADER.encode("latin-1"), correlation_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        logger.debug("HTTP request started", client_ip=request.client.host if request.client else "unknown")
        try:
            await self.app(scope, receive, send_with_logging)
            logger.info(
                "HTTP request completed",
                status_code=status_code,
                process_time=round(time.time() - start_time, 4),
            )
        except Exception as e:
            logger.error(
                "Unhandled exception in request",
                error=str(e),
                process_time=round(time.time() - start_time, 4),
                exc_info=True,
            )
            raise
        finally:
            clear_request_context()
