"""
Enhanced structlog-based logging configuration for FitConnect.

This module provides the logging system with MDC (Mapped Diagnostic Context),
correlation IDs and security sanitization. It is the single entry point for
obtaining loggers: every module uses get_logger(__name__) and logs with
keyword context, never with positional formatting.

CORRECT USAGE:
    from ..structured_logging.enhanced_logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Message sent", sender_id=sender_id, recipient_id=recipient_id)
"""

import json
import logging
import re
from typing import Any, cast

import structlog
from structlog.contextvars import merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

from fitconnect.structured_logging.logging_context import (
    bind_request_context,
    clear_request_context,
    get_current_context,
)
from fitconnect.structured_logging.logging_file_setup import setup_enhanced_file_logging
from fitconnect.structured_logging.logging_processors import (
    add_correlation_id,
    add_request_context,
    enhance_user_ids,
    sanitize_sensitive_data,
    set_global_user_directory,
)
from fitconnect.structured_logging.logging_utilities import detect_environment

__all__ = [
    "bind_request_context",
    "clear_request_context",
    "configure_enhanced_structlog",
    "get_current_context",
    "get_logger",
    "setup_enhanced_logging",
    "update_logging_with_user_directory",
]

logger = structlog.get_logger(__name__)

_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class _LoggingState:  # pylint: disable=too-few-public-methods  # Reason: State container class
    """State container for logging initialization to avoid global statements."""

    initialized: bool = False
    signature: str | None = None


_logging_state = _LoggingState()


def _strip_ansi_renderer(bound_logger: Any, name: str, event_dict: dict[str, Any]) -> str:
    """Render key=value pairs with ANSI escape sequences removed."""
    try:
        formatted = structlog.processors.KeyValueRenderer(
            key_order=["timestamp", "level", "event", "logger"], drop_missing=True
        )(bound_logger, name, event_dict)
        return _ANSI_ESCAPE.sub("", formatted)
    except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: a renderer failure must not break the caller
        return f"Logging renderer error: {type(e).__name__}: {e}"


def configure_enhanced_structlog(
    environment: str | None = None,
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure structlog with MDC, sanitization and file output.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary
    """
    if environment is None:
        environment = detect_environment()

    base_processors = [
        sanitize_sensitive_data,
        add_correlation_id,
        add_request_context,
        enhance_user_ids,
        merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_config and not log_config.get("disable_logging", False):
        setup_enhanced_file_logging(environment, log_config, log_level)
    else:
        logging.getLogger().setLevel(getattr(logging, log_level.upper(), logging.INFO))

    structlog.configure(
        processors=base_processors + [_strip_ansi_renderer],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_enhanced_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from the legacy config dictionary produced by AppConfig.

    Repeated calls with the same configuration are ignored unless
    force_reconfigure is set.

    Args:
        config: Configuration dictionary with a "logging" section
        force_reconfigure: When True, tear down existing handlers before reconfiguring
    """
    config_signature = json.dumps(config, sort_keys=True, default=str)

    if _logging_state.initialized and not force_reconfigure and _logging_state.signature == config_signature:
        get_logger("fitconnect.structured_logging.setup").debug(
            "setup_enhanced_logging skipped; logging system already initialized"
        )
        return

    logging_config = config.get("logging", {})
    environment = logging_config.get("environment", detect_environment())
    log_level = logging_config.get("level", "INFO")

    if logging_config.get("disable_logging", False):
        configure_enhanced_structlog(environment, log_level, {"disable_logging": True})
    else:
        configure_enhanced_structlog(environment, log_level, logging_config)
        _configure_uvicorn_logging()

    get_logger("fitconnect.structured_logging.enhanced").info(
        "Enhanced logging system initialized",
        environment=environment,
        log_level=log_level,
        log_base=logging_config.get("log_base", "logs"),
    )

    _logging_state.initialized = True
    _logging_state.signature = config_signature


def _configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the root handlers."""
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def update_logging_with_user_directory(user_directory: Any) -> None:
    """Enable "<name>: <id>" rendering of user ID fields."""
    set_global_user_directory(user_directory)
    cast(Any, get_logger("fitconnect.structured_logging")).info(
        "Logging enhanced with user display names", user_directory_available=user_directory is not None
    )
