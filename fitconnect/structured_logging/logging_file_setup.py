"""
File logging setup for the enhanced logging system.

Each category gets its own rotating log file under <log_base>/<environment>/,
and every WARNING+ record is also copied into errors.log.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from fitconnect.structured_logging.logging_utilities import ensure_log_directory, resolve_log_base

# Logger name prefix -> log file stem
LOG_CATEGORIES: dict[str, list[str]] = {
    "realtime": ["fitconnect.realtime", "fitconnect.client.connection_manager", "fitconnect.client.transport"],
    "messaging": ["fitconnect.services", "fitconnect.persistence", "fitconnect.client"],
    "api": ["fitconnect.api", "fitconnect.auth", "fitconnect.error_handlers", "fitconnect.middleware"],
    "server": ["fitconnect.app", "fitconnect.main", "fitconnect.config", "uvicorn"],
}

_HANDLER_MARKER = "_fitconnect_handler"


def _convert_max_size_to_bytes(max_size: str | int) -> int:
    """Convert a size string like '100MB' to bytes."""
    if isinstance(max_size, int):
        return max_size
    value = max_size.strip().upper()
    for suffix, factor in (("GB", 1024**3), ("MB", 1024**2), ("KB", 1024), ("B", 1)):
        if value.endswith(suffix):
            return int(float(value[: -len(suffix)]) * factor)
    return int(value)


class _PrefixFilter(logging.Filter):
    """Accept records whose logger name starts with one of the allowed prefixes."""

    def __init__(self, allowed_prefixes: list[str]) -> None:
        super().__init__()
        self.allowed_prefixes = tuple(allowed_prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.startswith(self.allowed_prefixes)


def _make_file_handler(path: Path, max_bytes: int, backup_count: int, level: int) -> logging.Handler:
    ensure_log_directory(path)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    setattr(handler, _HANDLER_MARKER, True)
    return handler


def remove_installed_handlers() -> None:
    """Detach handlers previously installed by setup_enhanced_file_logging()."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()


def setup_enhanced_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> Path:
    """
    Configure category file handlers, an errors aggregator and a console handler.

    Args:
        environment: Environment name used as the log sub-directory
        log_config: Logging configuration dictionary
        log_level: Minimum level for category handlers

    Returns:
        The directory log files are written to
    """
    remove_installed_handlers()

    env_log_dir = resolve_log_base(log_config.get("log_base", "logs")) / environment
    rotation = log_config.get("rotation", {})
    max_bytes = _convert_max_size_to_bytes(rotation.get("max_size", "100MB"))
    backup_count = int(rotation.get("backup_count", 5))
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for category, prefixes in LOG_CATEGORIES.items():
        handler = _make_file_handler(env_log_dir / f"{category}.log", max_bytes, backup_count, level)
        handler.addFilter(_PrefixFilter(prefixes))
        root_logger.addHandler(handler)

    errors_handler = _make_file_handler(env_log_dir / "errors.log", max_bytes, backup_count, logging.WARNING)
    root_logger.addHandler(errors_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(console_handler, _HANDLER_MARKER, True)
    root_logger.addHandler(console_handler)

    return env_log_dir
