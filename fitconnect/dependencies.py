"""
Dependency injection providers for FitConnect.

Services are created once in the application lifespan and stored on
app.state; routes reach them only through these providers.
"""

from fastapi import Depends, Request

from .realtime.connection_manager import ConnectionManager
from .services.messaging_service import MessagingService
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def get_messaging_service(request: Request) -> MessagingService:
    """Get the MessagingService created during startup."""
    service = getattr(request.app.state, "messaging_service", None)
    if service is None:
        raise RuntimeError("MessagingService not found in app.state - ensure the lifespan has run")
    return service


def get_connection_manager(request: Request) -> ConnectionManager:
    """Get the push ConnectionManager created during startup."""
    manager = getattr(request.app.state, "connection_manager", None)
    if manager is None:
        raise RuntimeError("ConnectionManager not found in app.state - ensure the lifespan has run")
    return manager


MessagingServiceDep = Depends(get_messaging_service)
ConnectionManagerDep = Depends(get_connection_manager)
