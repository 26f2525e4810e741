from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.http import current_role, current_user_id, int_arg, json_body, login_required, ok, roles_required
from ..common.validators import require_enum, require_non_empty
from ..container import Container
from ..core.constants import APPROVAL_WAIT_MAX_SECONDS, DEFAULT_HISTORY_LIMIT
from ..core.enums import DeviceClass, Role, WorkMode
from ..core.exceptions import AuthorizationError
from .model import AttendanceRecord, DeviceContext


def _record_json(record: AttendanceRecord | None) -> dict | None:
    if record is None:
        return None
    return {
        "attendance_id": record.attendance_id,
        "worker_id": record.worker_id,
        "work_date": record.work_date,
        "check_in_time": record.check_in_time,
        "check_out_time": record.check_out_time,
        "status": record.status,
        "mode": record.mode,
        "state": record.day_state,
        "early_exit_requested": record.early_exit_requested,
        "early_exit_reason": record.early_exit_reason,
        "early_exit_approved": record.early_exit_approved,
        "early_exit_approved_at": record.early_exit_approved_at,
    }


def register(app: Flask, container: Container) -> None:
    sessions = container.day_session_service

    @app.route("/api/attendance/start-day", methods=["POST"], endpoint="attendance_start_day")
    @roles_required(Role.WORKER)
    def start_day():
        body = json_body()
        device = DeviceContext(
            fingerprint=require_non_empty(body.get("device_id") or "", "Device id"),
            device_class=require_enum(DeviceClass, body.get("device_class") or DeviceClass.KIOSK, "device class"),
        )
        result = sessions.start_day(
            current_user_id(),
            device,
            kiosk_fingerprint=container.settings_service.get_kiosk_fingerprint(),
        )
        return ok(
            {"record": _record_json(result.record), "created": result.created},
            status=201 if result.created else 200,
        )

    @app.route("/api/attendance/switch-mode", methods=["POST"], endpoint="attendance_switch_mode")
    @roles_required(Role.WORKER)
    def switch_mode():
        body = json_body()
        mode = require_enum(WorkMode, body.get("mode"), "mode")
        record = sessions.switch_mode(current_user_id(), mode, notes=body.get("notes"))
        return ok(_record_json(record))

    @app.route("/api/attendance/early-exit", methods=["POST"], endpoint="attendance_early_exit")
    @roles_required(Role.WORKER)
    def request_early_exit():
        result = sessions.request_early_exit(current_user_id(), json_body().get("reason") or "")
        return ok({"record": _record_json(result.record), "share_url": result.share_url})

    @app.route(
        "/api/attendance/early-exit/<int:attendance_id>/approve",
        methods=["POST"],
        endpoint="attendance_approve_early_exit",
    )
    @login_required
    def approve_early_exit(attendance_id: int):
        record = sessions.approve_early_exit(attendance_id, current_role=current_role())
        return ok(_record_json(record))

    @app.route(
        "/api/attendance/early-exit/<int:attendance_id>/wait",
        methods=["GET"],
        endpoint="attendance_wait_early_exit",
    )
    @login_required
    def wait_early_exit(attendance_id: int):
        timeout = int_arg("timeout", APPROVAL_WAIT_MAX_SECONDS)
        owner = current_user_id() if current_role() == Role.WORKER else None
        record = sessions.wait_for_early_exit_approval(attendance_id, timeout=timeout, worker_id=owner)
        return ok(_record_json(record))

    @app.route("/api/attendance/end-day", methods=["POST"], endpoint="attendance_end_day")
    @roles_required(Role.WORKER)
    def end_day():
        summary = sessions.end_day(current_user_id())
        return ok(
            {
                "record": _record_json(summary.record),
                "segments": summary.segments,
                "total_minutes": summary.total_minutes,
                "hours": summary.hours_part,
                "minutes": summary.minutes_part,
                "minutes_by_mode": summary.minutes_by_mode,
            }
        )

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def today():
        worker_id = current_user_id()
        work_date = now_local().date()
        record = sessions.get_today(worker_id, today=work_date)
        return ok(
            {
                "state": record.day_state if record else sessions.get_day_state(worker_id, today=work_date),
                "record": _record_json(record),
                "segments": sessions.get_segments(worker_id, work_date),
            }
        )

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @login_required
    def history():
        limit = int_arg("limit", DEFAULT_HISTORY_LIMIT)
        worker_id = current_user_id()
        requested = int_arg("worker_id")
        if requested is not None and requested != worker_id:
            if current_role() == Role.WORKER:
                raise AuthorizationError("You do not have permission")
            worker_id = requested
        return ok([_record_json(r) for r in sessions.get_history(worker_id, limit=limit)])

    @app.route("/api/attendance/status", methods=["GET"], endpoint="attendance_status_on")
    @roles_required(Role.ADMIN, Role.MANAGER, Role.SWAMIJI)
    def status_on():
        worker_id = int_arg("worker_id")
        day = parse_iso_date(request.args.get("date") or now_local().date().isoformat())
        if worker_id is None:
            worker_id = current_user_id()
        return ok({"worker_id": worker_id, "date": day, "status": sessions.get_status_on(worker_id, day)})

    @app.route("/api/attendance/pending-early-exits", methods=["GET"], endpoint="attendance_pending_early_exits")
    @roles_required(Role.SWAMIJI, Role.ADMIN)
    def pending_early_exits():
        return ok([_record_json(r) for r in sessions.list_pending_early_exits()])
