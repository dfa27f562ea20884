"""Session identity read by the messaging client."""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Account role of the signed-in user."""

    CLIENT = "client"
    TRAINER = "trainer"
    ADMIN = "admin"


@dataclass(frozen=True)
class SessionIdentity:
    """
    The signed-in user as provided by the authentication collaborator.

    access_token is the bearer credential sent on every REST call and when
    opening the push channel.
    """

    user_id: str
    role: Role
    access_token: str

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("SessionIdentity requires a user_id")
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))

    @property
    def is_trainer(self) -> bool:
        return self.role == Role.TRAINER

    @property
    def is_client(self) -> bool:
        return self.role == Role.CLIENT
