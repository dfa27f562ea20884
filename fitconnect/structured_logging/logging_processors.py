"""
Logging processors for structlog event processing.

This module provides processors for sanitizing sensitive data, adding correlation IDs,
request context, and enhancing user IDs with display names.
"""

import re
import threading
import uuid
from datetime import UTC, datetime
from typing import Any


class _UserDirectoryHolder:  # pylint: disable=too-few-public-methods  # Reason: Holder class with focused responsibility
    user_directory: Any | None = None


_user_directory_holder = _UserDirectoryHolder()

# Thread-local flag to prevent recursion in enhance_user_ids
_enhancing_user_ids = threading.local()

# Fields matching these patterns are redacted wherever they appear.
# Words are matched as whole underscore-separated parts: access_token, jwt_secret.
SENSITIVE_PATTERNS = [
    r"(?:^|_)password(?:_|$)",
    r"(?:^|_)token(?:_|$)",
    r"(?:^|_)secret(?:_|$)",
    r"_key$",
    r"^key$",
    r"(?:^|_)credentials?(?:_|$)",
    r"(?:^|_)auth(?:_|$)",
    r"(?:^|_)jwt(?:_|$)",
    r"(?:^|_)bearer(?:_|$)",
    r"(?:^|_)authorization(?:_|$)",
]

SAFE_FIELDS = {"idempotency_key", "event_key"}

# Log fields carrying user identifiers that may be rendered with a display name
USER_ID_FIELDS = ("user_id", "sender_id", "recipient_id", "client_id", "trainer_id")


def set_global_user_directory(user_directory: Any) -> None:
    """
    Set the user directory used to render user IDs with display names.

    Args:
        user_directory: Object exposing get_user_sync(user_id) or None to disable
    """
    _user_directory_holder.user_directory = user_directory


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    Bearer credentials travel on every REST call and on the socket query
    string, so anything resembling a token is replaced before rendering.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
                continue
            key_lower = str(key).lower()
            if key_lower in SAFE_FIELDS:
                sanitized[key] = value
            elif any(re.search(pattern, key_lower) for pattern in SENSITIVE_PATTERNS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def add_correlation_id(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add a correlation ID to log entries if not already present."""
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid.uuid4())

    return event_dict


def add_request_context(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add request context information to log entries.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name
        event_dict: Event dictionary to enhance

    Returns:
        Enhanced event dictionary with request context
    """
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(UTC).isoformat()

    if "logger_name" not in event_dict:
        event_dict["logger_name"] = _name

    return event_dict


def enhance_user_ids(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Render user ID fields as "<name>: <id>" for readability.

    Only active once a user directory has been registered with
    set_global_user_directory().
    """
    user_directory = _user_directory_holder.user_directory
    if user_directory is None:
        return event_dict

    if getattr(_enhancing_user_ids, "active", False):
        return event_dict

    _enhancing_user_ids.active = True
    try:
        for key in USER_ID_FIELDS:
            value = event_dict.get(key)
            if not isinstance(value, str) or value.startswith("<"):
                continue
            try:
                user = user_directory.get_user_sync(value)
            except (AttributeError, KeyError, TypeError, ValueError, RecursionError):
                user = None
            if user is not None:
                event_dict[key] = f"<{user.display_name}>: {value}"
    finally:
        _enhancing_user_ids.active = False

    return event_dict
