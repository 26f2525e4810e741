from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_enum, require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import UserProfile
from .repository import UserRepository

# Who may invite whom.
_INVITABLE_ROLES = {
    Role.ADMIN: {Role.MANAGER, Role.SWAMIJI, Role.WORKER},
    Role.MANAGER: {Role.WORKER},
}


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    name: str
    role: Role


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> SessionUser:
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder or corrupted hash values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        return SessionUser(user_id=user.user_id, name=user.name, role=user.role)


class UserService:
    """Use case: manage users (admin, manager)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def create_account(
        self,
        *,
        current_role: Role,
        name: str,
        username: str,
        password: str,
        role: Role,
        phone: Optional[str] = None,
    ) -> int:
        role = require_enum(Role, role, "role")
        if role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be created here")
        if role not in _INVITABLE_ROLES.get(Role(current_role), set()):
            raise AuthorizationError("You do not have permission")

        name = require_non_empty(name, "Name")
        username = require_non_empty(username, "Username")
        require_min_length(password, "Password", 6)

        if self._users.get_by_username(username):
            raise ValidationError("Username already exists")

        return self._users.create_user(
            name=name,
            username=username,
            password_hash=generate_password_hash(password),
            role=role,
            phone=(phone or "").strip() or None,
        )

    def list_admin_view(self) -> list[UserProfile]:
        return [UserProfile.from_user(u) for u in self._users.list_all()]

    def list_active_by_role(self, role: Role) -> list[UserProfile]:
        return [UserProfile.from_user(u) for u in self._users.list_active_by_role(Role(role))]

    def get_active_profile(self, user_id: int) -> UserProfile:
        user = self._users.get_by_id(user_id)
        if not user or not user.is_active:
            raise NotFoundError("User not found")
        return UserProfile.from_user(user)

    def set_active(self, *, current_role: Role, user_id: int, is_active: bool) -> None:
        if Role(current_role) != Role.ADMIN:
            raise AuthorizationError("You do not have permission")
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role == Role.ADMIN and not is_active:
            raise ValidationError("Admin accounts cannot be deactivated")
        self._users.set_active(user_id, is_active=bool(is_active))

    def delete_user(self, *, current_role: Role, user_id: int) -> None:
        if Role(current_role) != Role.ADMIN:
            raise AuthorizationError("You do not have permission")

        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be deleted")

        if not self._users.delete_by_id(user_id):
            raise ValidationError("Failed to delete user")
