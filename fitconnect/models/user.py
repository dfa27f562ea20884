"""
User models for FitConnect messaging.

Users are owned by the account system; the messaging layer only reads the
fields it needs to enforce who may talk to whom.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    """Roles recognised by the messaging layer."""

    CLIENT = "client"
    TRAINER = "trainer"
    ADMIN = "admin"


class User(BaseModel):
    """A gym member, personal trainer or administrator."""

    id: str = Field(..., description="Opaque user identifier")
    first_name: str = Field(default="", description="Given name")
    last_name: str = Field(default="", description="Family name")
    username: str = Field(..., description="Login name")
    email: str = Field(default="", description="Contact e-mail")
    role: UserRole = Field(..., description="Account role")
    assigned_trainer_id: str | None = Field(default=None, description="Trainer assigned to a client")
    is_active: bool = Field(default=True, description="Inactive users cannot receive messages")
    is_approved: bool = Field(default=True, description="Only approved trainers may send alerts")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=False)

    @property
    def display_name(self) -> str:
        """First and last name, falling back to the username."""
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.username

    def to_contact(self) -> dict:
        """Public contact card returned by the contact endpoint."""
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "isActive": self.is_active,
        }


class Participant(BaseModel):
    """Compact sender/recipient reference embedded in serialized messages."""

    id: str
    name: str

    @classmethod
    def from_user(cls, user: User) -> "Participant":
        return cls(id=user.id, name=user.display_name)
