"""
FastAPI application factory for FitConnect.

This module handles FastAPI app creation, middleware configuration,
and router registration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..api.messages import messages_router
from ..api.real_time import realtime_router
from ..config import get_config
from ..config.models import AppConfig
from ..error_handlers import register_error_handlers
from ..middleware.request_logging import RequestLoggingMiddleware
from ..persistence import MessageStore, UserDirectory
from ..structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(
    config: AppConfig | None = None,
    user_directory: UserDirectory | None = None,
    message_store: MessageStore | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration; loaded from the environment when omitted
        user_directory: Pre-populated user directory, replacing users_file loading
        message_store: Existing message store to serve

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    config = config or get_config()
    setup_enhanced_logging(config.to_legacy_dict())

    app = FastAPI(
        title="FitConnect Messaging API",
        description="Trainer and client chat, missed-workout alerts and push notifications",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    if user_directory is not None:
        app.state.user_directory = user_directory
    if message_store is not None:
        app.state.message_store = message_store

    cors = config.cors
    logger.info(
        "CORS configuration",
        allow_origins=cors.allow_origins,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
        allow_credentials=cors.allow_credentials,
        max_age=cors.max_age,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.allow_origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=[m.upper() for m in cors.allow_methods],
        allow_headers=cors.allow_headers,
        max_age=cors.max_age,
    )

    register_error_handlers(app)

    app.include_router(messages_router)
    app.include_router(realtime_router)

    return app
