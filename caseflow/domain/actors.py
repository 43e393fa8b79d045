"""Who performs an operation."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    AGENT = "agent"
    EMPLOYEE = "employee"
    END_USER = "end_user"
    SYSTEM = "system"


@dataclass(frozen=True, slots=True)
class Actor:
    """Authorization context attached to every operation."""

    user_id: str | None
    role: Role
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def display_name(self) -> str:
        return self.name or self.user_id or self.role.value


SYSTEM_ACTOR = Actor(user_id=None, role=Role.SYSTEM, name="System")
