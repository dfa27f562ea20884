"""
Error handlers package for FitConnect.

Usage:
    from fitconnect.error_handlers import register_error_handlers
"""

from .handlers import (
    fitconnect_exception_handler,
    general_exception_handler,
    http_exception_handler,
    logged_http_exception_handler,
    register_error_handlers,
    request_validation_exception_handler,
)

__all__ = [
    "fitconnect_exception_handler",
    "general_exception_handler",
    "http_exception_handler",
    "logged_http_exception_handler",
    "register_error_handlers",
    "request_validation_exception_handler",
]
