"""Storage for messages and the users allowed to exchange them."""

from .message_store import MessageStore
from .user_directory import UserDirectory

__all__ = ["MessageStore", "UserDirectory"]
