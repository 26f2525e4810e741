from __future__ import annotations

from flask import Flask, request

from ..common.http import current_user_id, int_arg, json_body, login_required, ok, roles_required
from ..common.validators import require_enum
from ..container import Container
from ..core.enums import NotificationType, Role


def register(app: Flask, container: Container) -> None:
    notifications = container.notification_service

    @app.route("/api/notifications/register-token", methods=["POST"], endpoint="notifications_register_token")
    @login_required
    def register_token():
        body = json_body()
        notifications.register_token(
            current_user_id(),
            body.get("token") or "",
            body.get("platform") or "web",
            body.get("device_name"),
        )
        return ok({"registered": True}, status=201)

    @app.route("/api/notifications", methods=["GET"], endpoint="notifications_list")
    @login_required
    def list_notifications():
        user_id = current_user_id()
        items = notifications.list_for_user(
            user_id,
            limit=int_arg("limit", 50),
            unread_only=request.args.get("unread") in ("1", "true"),
        )
        return ok(items, unread=notifications.unread_count(user_id))

    @app.route("/api/notifications/<int:notification_id>/read", methods=["POST"], endpoint="notifications_read")
    @login_required
    def mark_read(notification_id: int):
        notifications.mark_read(current_user_id(), notification_id)
        return ok({"notification_id": notification_id, "is_read": True})

    @app.route("/api/notifications/read-all", methods=["POST"], endpoint="notifications_read_all")
    @login_required
    def mark_all_read():
        return ok({"updated": notifications.mark_all_read(current_user_id())})

    @app.route("/api/notifications/send", methods=["POST"], endpoint="notifications_send")
    @roles_required(Role.ADMIN, Role.SWAMIJI)
    def send():
        body = json_body()
        report = notifications.notify_user(
            int(body.get("user_id") or 0),
            body.get("title") or "",
            body.get("body") or "",
            type=require_enum(NotificationType, body.get("type") or "info", "type"),
            data=body.get("data") if isinstance(body.get("data"), dict) else None,
        )
        return ok(report)
