"""
Structured logging package for FitConnect.

All imports should use explicit paths like
'from fitconnect.structured_logging.enhanced_logging_config import get_logger'.

The directory is named 'structured_logging' rather than 'logging' to avoid
shadowing the standard library module.
"""

__all__ = []
