from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_role, current_user_id, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    leaves = container.leave_service

    @app.route("/api/leaves", methods=["POST"], endpoint="leaves_create")
    @roles_required(Role.WORKER)
    def create_leave():
        body = json_body()
        request_id = leaves.create_leave(
            current_role=current_role(),
            worker_id=current_user_id(),
            start_date=parse_iso_date(body.get("start_date") or ""),
            end_date=parse_iso_date(body.get("end_date") or ""),
            leave_type=body.get("leave_type") or "casual",
            reason=body.get("reason") or "",
        )
        return ok({"request_id": request_id}, status=201)

    @app.route("/api/leaves/mine", methods=["GET"], endpoint="leaves_mine")
    @login_required
    def my_leaves():
        return ok(leaves.list_my_leaves(current_user_id()))

    @app.route("/api/leaves", methods=["GET"], endpoint="leaves_list")
    @roles_required(Role.SWAMIJI, Role.ADMIN, Role.MANAGER)
    def list_leaves():
        return ok(leaves.list_by_status(request.args.get("status") or None))

    @app.route("/api/leaves/<int:request_id>/approve", methods=["POST"], endpoint="leaves_approve")
    @login_required
    def approve(request_id: int):
        leaves.approve_leave(current_role=current_role(), decided_by=current_user_id(), request_id=request_id)
        return ok({"request_id": request_id, "status": "approved"})

    @app.route("/api/leaves/<int:request_id>/reject", methods=["POST"], endpoint="leaves_reject")
    @login_required
    def reject(request_id: int):
        leaves.reject_leave(
            current_role=current_role(),
            decided_by=current_user_id(),
            request_id=request_id,
            rejection_reason=json_body().get("reason") or "",
        )
        return ok({"request_id": request_id, "status": "rejected"})
