"""User entity for the crossbook application."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class UserRole(Enum):
    """Roles a user account can hold. One account may hold several."""
    CLIENT = "CLIENT"
    DRIVER = "DRIVER"
    BLOG_EDITOR = "BLOG_EDITOR"
    ADMIN = "ADMIN"


@dataclass
class User:
    """
    Represents an account in the booking platform.

    Attributes:
        id: Unique identifier for the user
        email: User's email address
        name: Display name
        phone: Contact phone number
        avatar: URL of the profile picture
        roles: Roles held by the account
        is_active: Whether the account may sign in
    """
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    roles: List[str] = field(default_factory=list)
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            email=data.get("email", ""),
            name=data.get("name", ""),
            phone=data.get("phone"),
            avatar=data.get("avatar"),
            roles=list(data.get("roles") or []),
            is_active=data.get("is_active", True),
        )

    def has_role(self, role: UserRole) -> bool:
        return role.value in self.roles

    @property
    def display_fields(self) -> Dict[str, Optional[str]]:
        """Fields shown to the other party of a booking."""
        return {"name": self.name, "phone": self.phone, "avatar": self.avatar}
