from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_role, current_user_id, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    holidays = container.holiday_service

    @app.route("/api/holidays", methods=["GET"], endpoint="holidays_upcoming")
    @login_required
    def upcoming():
        from_date = request.args.get("from")
        return ok(holidays.list_upcoming(parse_iso_date(from_date) if from_date else None))

    @app.route("/api/holidays", methods=["POST"], endpoint="holidays_add")
    @roles_required(Role.ADMIN)
    def add_holiday():
        body = json_body()
        holiday_id = holidays.add_holiday(
            current_role=current_role(),
            holiday_date=parse_iso_date(body.get("date") or ""),
            name=body.get("name") or "",
            holiday_type=body.get("holiday_type") or "full",
            half_day_end_time=body.get("half_day_end_time"),
            is_recurring=bool(body.get("is_recurring")),
        )
        return ok({"holiday_id": holiday_id}, status=201)

    @app.route("/api/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="holidays_delete")
    @roles_required(Role.ADMIN)
    def delete_holiday(holiday_id: int):
        holidays.delete_holiday(current_role=current_role(), holiday_id=holiday_id)
        return ok({"deleted": holiday_id})

    @app.route("/api/holidays/settings", methods=["GET"], endpoint="holidays_settings")
    @login_required
    def get_settings():
        return ok(holidays.get_settings())

    @app.route("/api/holidays/settings", methods=["PUT"], endpoint="holidays_settings_update")
    @roles_required(Role.ADMIN)
    def update_settings():
        body = json_body()
        monthly = body.get("monthly_holidays_allowed")
        return ok(
            holidays.update_settings(
                current_role=current_role(),
                monthly_holidays_allowed=int(monthly) if monthly is not None else None,
                sunday_half_day=body.get("sunday_half_day"),
                sunday_end_time=body.get("sunday_end_time"),
                allow_consecutive_holidays=body.get("allow_consecutive_holidays"),
            )
        )

    @app.route("/api/day-offs", methods=["POST"], endpoint="day_offs_request")
    @roles_required(Role.WORKER)
    def request_day_off():
        body = json_body()
        request_id = holidays.request_day_off(
            current_role=current_role(),
            worker_id=current_user_id(),
            holiday_date=parse_iso_date(body.get("date") or ""),
            holiday_type=body.get("holiday_type") or "full",
            reason=body.get("reason"),
        )
        return ok({"request_id": request_id}, status=201)

    @app.route("/api/day-offs/mine", methods=["GET"], endpoint="day_offs_mine")
    @login_required
    def my_days_off():
        return ok(holidays.list_my_days_off(current_user_id()))

    @app.route("/api/day-offs/pending", methods=["GET"], endpoint="day_offs_pending")
    @roles_required(Role.SWAMIJI, Role.ADMIN)
    def pending_days_off():
        return ok(holidays.list_pending_days_off())

    @app.route("/api/day-offs/<int:request_id>/decide", methods=["POST"], endpoint="day_offs_decide")
    @login_required
    def decide_day_off(request_id: int):
        approve = bool(json_body().get("approve"))
        holidays.decide_day_off(current_role=current_role(), request_id=request_id, approve=approve)
        return ok({"request_id": request_id, "status": "approved" if approve else "rejected"})
