"""Application services."""

from .messaging_service import MessagingService

__all__ = ["MessagingService"]
