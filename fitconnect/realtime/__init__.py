"""Server-side push channel: envelopes, user scopes and the socket loop."""

from .connection_manager import ConnectionManager, user_scope
from .envelope import build_event, utc_now_z

__all__ = ["ConnectionManager", "build_event", "user_scope", "utc_now_z"]
