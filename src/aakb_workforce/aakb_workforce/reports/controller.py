from __future__ import annotations

from datetime import timedelta

from flask import Flask, Response, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.http import int_arg, ok, roles_required
from ..container import Container
from ..core.constants import DEFAULT_REPORT_DAYS
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    reports = container.report_service

    def _range():
        today = now_local().date()
        start_raw = request.args.get("start")
        end_raw = request.args.get("end")
        end = parse_iso_date(end_raw) if end_raw else today
        start = parse_iso_date(start_raw) if start_raw else end - timedelta(days=DEFAULT_REPORT_DAYS - 1)
        return start, end

    @app.route("/api/reports/attendance", methods=["GET"], endpoint="reports_attendance")
    @roles_required(Role.ADMIN, Role.MANAGER, Role.SWAMIJI)
    def attendance_report():
        start, end = _range()
        report = reports.build_attendance_report(start=start, end=end, worker_id=int_arg("worker_id"))
        return ok(report, start=start, end=end)

    @app.route("/api/reports/attendance.csv", methods=["GET"], endpoint="reports_attendance_csv")
    @roles_required(Role.ADMIN, Role.MANAGER, Role.SWAMIJI)
    def attendance_report_csv():
        start, end = _range()
        report = reports.build_attendance_report(start=start, end=end, worker_id=int_arg("worker_id"))
        filename = f"attendance_{start.isoformat()}_{end.isoformat()}.csv"
        return Response(
            reports.to_csv(report),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
