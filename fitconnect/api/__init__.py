"""HTTP and WebSocket routers."""

from .messages import messages_router
from .real_time import realtime_router

__all__ = ["messages_router", "realtime_router"]
