"""
Authentication dependencies for FitConnect.

This module provides dependency injection functions for
authentication in FastAPI endpoints.
"""

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..error_types import ErrorMessages
from ..exceptions import AuthenticationError, LoggedHTTPException, create_error_context
from ..models import User
from .tokens import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> User:
    """Resolve the bearer token to an active user or raise 401."""
    token = credentials.credentials if credentials else None
    try:
        claims = decode_access_token(token, request.app.state.config.security)
    except AuthenticationError as e:
        raise LoggedHTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.user_friendly,
            context=create_error_context(operation="get_current_user", metadata={"path": request.url.path}),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user = await request.app.state.user_directory.get_user(claims.user_id)
    if user is None or not user.is_active:
        raise LoggedHTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=ErrorMessages.INVALID_TOKEN,
            context=create_error_context(user_id=claims.user_id, operation="get_current_user"),
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.user = user
    return user


__all__ = ["bearer_scheme", "get_current_user"]
