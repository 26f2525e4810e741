from __future__ import annotations

from flask import Flask, request

from ..common.http import current_role, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    settings = container.settings_service

    @app.route("/api/settings", methods=["GET"], endpoint="settings_get")
    @login_required
    def get_settings():
        return ok(settings.as_dict())

    @app.route("/api/settings", methods=["PUT"], endpoint="settings_update")
    @roles_required(Role.ADMIN)
    def update_settings():
        body = json_body()
        if body.get("late_time"):
            settings.set_late_cutoff(str(body["late_time"]), current_role=current_role())
        if body.get("emergency_contact"):
            settings.set_emergency_contact(str(body["emergency_contact"]), current_role=current_role())
        return ok(settings.as_dict())

    @app.route("/api/settings/kiosk", methods=["GET"], endpoint="settings_kiosk_status")
    @login_required
    def kiosk_status():
        registered = settings.get_kiosk_fingerprint()
        fingerprint = request.args.get("device_id")
        return ok(
            {
                "registered": registered is not None,
                "this_device": bool(fingerprint) and fingerprint == registered,
            }
        )

    @app.route("/api/settings/kiosk", methods=["POST"], endpoint="settings_kiosk_register")
    @roles_required(Role.ADMIN)
    def register_kiosk():
        settings.register_kiosk(json_body().get("device_id") or "", current_role=current_role())
        return ok({"registered": True}, status=201)

    @app.route("/api/settings/kiosk", methods=["DELETE"], endpoint="settings_kiosk_clear")
    @roles_required(Role.ADMIN)
    def clear_kiosk():
        settings.clear_kiosk(current_role=current_role())
        return ok({"registered": False})
