from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: plain data object (no DB access code here).
    """

    user_id: int
    name: str
    username: str
    password_hash: str
    role: Role
    phone: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class UserProfile:
    """Public view of a user (no credentials)."""

    user_id: int
    name: str
    username: str
    role: Role
    phone: Optional[str]
    is_active: bool

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            user_id=user.user_id,
            name=user.name,
            username=user.username,
            role=user.role,
            phone=user.phone,
            is_active=user.is_active,
        )
