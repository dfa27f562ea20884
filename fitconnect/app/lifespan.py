"""Application lifecycle management for FitConnect.

Startup builds the in-memory stores, the push connection manager and the
messaging service and stores them on app.state. Shutdown closes every
push connection still open.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..persistence import MessageStore, UserDirectory
from ..realtime.connection_manager import ConnectionManager
from ..services.messaging_service import MessagingService
from ..structured_logging.enhanced_logging_config import get_logger, update_logging_with_user_directory

logger = get_logger("fitconnect.lifespan")


def _build_user_directory(app: FastAPI) -> UserDirectory:
    existing = getattr(app.state, "user_directory", None)
    if existing is not None:
        return existing
    users_file = app.state.config.server.users_file
    if users_file:
        return UserDirectory.from_json_file(users_file)
    logger.warning("No users_file configured; starting with an empty user directory")
    return UserDirectory()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create services on startup and release connections on shutdown."""
    logger.info("Starting FitConnect messaging server")
    config = app.state.config

    user_directory = _build_user_directory(app)
    message_store = getattr(app.state, "message_store", None) or MessageStore(user_directory)
    connection_manager = ConnectionManager()

    app.state.user_directory = user_directory
    app.state.message_store = message_store
    app.state.connection_manager = connection_manager
    app.state.messaging_service = MessagingService(
        message_store, user_directory, connection_manager, config.messaging
    )

    update_logging_with_user_directory(user_directory)
    logger.info("FitConnect messaging server started", user_count=len(user_directory))

    try:
        yield
    finally:
        logger.info("Shutting down FitConnect messaging server")
        for connection_id, websocket in list(connection_manager.active_websockets.items()):
            try:
                await websocket.close(code=1001, reason="Server shutting down")
            except RuntimeError as e:
                logger.debug("Push connection already closed", connection_id=connection_id, error=str(e))
            await connection_manager.disconnect(connection_id)
        update_logging_with_user_directory(None)
        logger.info("FitConnect messaging server stopped", stats=connection_manager.get_stats())
