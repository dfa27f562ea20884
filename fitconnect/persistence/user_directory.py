"""
Read-mostly user directory.

Accounts are created by the authentication collaborator; this directory is
the messaging layer's view of them, used for permission checks, contact
lookups and display names in conversation summaries and logs.
"""

import json
import threading
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigurationError
from ..models import User, UserRole
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class UserDirectory:
    """Thread-safe in-memory mapping of user id to User."""

    def __init__(self, users: list[User] | None = None) -> None:
        self._users: dict[str, User] = {}
        # Also read synchronously from logging processors
        self._lock = threading.Lock()
        for user in users or []:
            self.add_user(user)

    def add_user(self, user: User) -> User:
        """Insert or replace a user."""
        with self._lock:
            self._users[user.id] = user
        logger.debug("User registered in directory", user_id=user.id, role=user.role.value)
        return user

    def get_user_sync(self, user_id: str) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    async def get_user(self, user_id: str) -> User | None:
        return self.get_user_sync(user_id)

    async def get_assigned_clients(self, trainer_id: str, active_only: bool = True) -> list[User]:
        """Clients assigned to trainer_id, sorted by first then last name."""
        with self._lock:
            clients = [
                user
                for user in self._users.values()
                if user.role == UserRole.CLIENT
                and user.assigned_trainer_id == trainer_id
                and (user.is_active or not active_only)
            ]
        return sorted(clients, key=lambda u: (u.first_name, u.last_name))

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "UserDirectory":
        """
        Load users from a JSON list of camelCase user objects.

        Raises:
            ConfigurationError: If the file cannot be read or a record is invalid
        """
        try:
            records = json.loads(Path(path).read_text(encoding="utf-8"))
            users = [User.model_validate(record) for record in records]
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            raise ConfigurationError(f"Cannot load users from {path}: {e}", config_key="users_file") from e
        logger.info("User directory loaded", path=str(path), user_count=len(users))
        return cls(users)
