"""
Bearer token verification.

Tokens are issued by the authentication collaborator; this module only
verifies them. The "sub" claim carries the user id and "role" the account
role. issue_access_token exists for tooling and tests.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from ..config.models import SecurityConfig
from ..error_types import ErrorMessages
from ..exceptions import AuthenticationError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of a bearer token."""

    user_id: str
    role: str | None
    expires_at: datetime | None


def decode_access_token(token: str | None, security: SecurityConfig) -> TokenClaims:
    """
    Verify a bearer token and return its claims.

    Raises:
        AuthenticationError: If the token is missing, malformed, expired or has no subject
    """
    if not token:
        raise AuthenticationError(
            "Missing bearer token",
            create_error_context(operation="decode_token"),
            user_friendly=ErrorMessages.AUTHENTICATION_REQUIRED,
        )

    options: dict[str, Any] = {"require": ["sub"]}
    try:
        data: dict[str, Any] = jwt.decode(
            token,
            security.jwt_secret,
            algorithms=[security.jwt_algorithm],
            audience=security.token_audience,
            options=options if security.token_audience else {**options, "verify_aud": False},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError(
            "Bearer token expired",
            create_error_context(operation="decode_token"),
            user_friendly=ErrorMessages.INVALID_TOKEN,
        ) from e
    except jwt.PyJWTError as e:
        logger.warning("JWT decode failed", error=str(e), error_type=type(e).__name__)
        raise AuthenticationError(
            f"Invalid bearer token: {type(e).__name__}",
            create_error_context(operation="decode_token"),
            user_friendly=ErrorMessages.INVALID_TOKEN,
        ) from e

    exp = data.get("exp")
    return TokenClaims(
        user_id=str(data["sub"]),
        role=data.get("role"),
        expires_at=datetime.fromtimestamp(exp, UTC) if exp is not None else None,
    )


def issue_access_token(
    user_id: str, security: SecurityConfig, role: str | None = None, expires_in: timedelta = timedelta(hours=1)
) -> str:
    """Sign a token for user_id. Negative expires_in produces an already expired token."""
    payload: dict[str, Any] = {"sub": user_id, "exp": datetime.now(UTC) + expires_in}
    if role:
        payload["role"] = role
    if security.token_audience:
        payload["aud"] = security.token_audience
    return jwt.encode(payload, security.jwt_secret, algorithm=security.jwt_algorithm)
