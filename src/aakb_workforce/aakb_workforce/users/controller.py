from __future__ import annotations

from datetime import timedelta

from flask import Flask, session

from ..common.http import current_role, current_user_id, json_body, login_required, ok, roles_required
from ..common.validators import require_enum
from ..container import Container
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    @app.route("/auth/login", methods=["POST"], endpoint="login")
    def login():
        body = json_body()
        s_user = container.auth_service.authenticate(body.get("username") or "", body.get("password") or "")

        session.clear()
        session.permanent = bool(body.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

        session["user_id"] = s_user.user_id
        session["name"] = s_user.name
        session["role"] = s_user.role.value
        return ok(s_user)

    @app.route("/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok({"logged_out": True})

    @app.route("/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def me():
        return ok(container.user_service.get_active_profile(current_user_id()))

    @app.route("/api/users", methods=["GET"], endpoint="users_list")
    @roles_required(Role.ADMIN, Role.MANAGER, Role.SWAMIJI)
    def list_users():
        return ok(container.user_service.list_admin_view())

    @app.route("/api/users/role/<role>", methods=["GET"], endpoint="users_by_role")
    @login_required
    def users_by_role(role: str):
        return ok(container.user_service.list_active_by_role(require_enum(Role, role, "role")))

    @app.route("/api/users", methods=["POST"], endpoint="users_invite")
    @roles_required(Role.ADMIN, Role.MANAGER)
    def invite_user():
        body = json_body()
        user_id = container.user_service.create_account(
            current_role=current_role(),
            name=body.get("name") or "",
            username=body.get("username") or "",
            password=body.get("password") or "",
            role=body.get("role") or Role.WORKER.value,
            phone=body.get("phone"),
        )
        return ok({"user_id": user_id}, status=201)

    @app.route("/api/users/<int:user_id>/active", methods=["POST"], endpoint="users_set_active")
    @roles_required(Role.ADMIN)
    def set_active(user_id: int):
        is_active = bool(json_body().get("is_active", True))
        container.user_service.set_active(current_role=current_role(), user_id=user_id, is_active=is_active)
        return ok({"user_id": user_id, "is_active": is_active})

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="users_delete")
    @roles_required(Role.ADMIN)
    def delete_user(user_id: int):
        container.user_service.delete_user(current_role=current_role(), user_id=user_id)
        return ok({"deleted": user_id})
