"""Bearer token verification and FastAPI authentication dependencies."""

from .dependencies import get_current_user
from .tokens import TokenClaims, decode_access_token, issue_access_token

__all__ = ["TokenClaims", "decode_access_token", "get_current_user", "issue_access_token"]
