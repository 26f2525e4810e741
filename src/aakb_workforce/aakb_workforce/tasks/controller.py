from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_role, current_user_id, int_arg, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    tasks = container.task_service

    @app.route("/api/tasks", methods=["POST"], endpoint="tasks_assign")
    @roles_required(Role.ADMIN, Role.MANAGER, Role.SWAMIJI)
    def assign_task():
        body = json_body()
        due = body.get("due_date")
        task_id = tasks.assign_task(
            current_role=current_role(),
            assigned_by=current_user_id(),
            assigned_to=int(body.get("assigned_to") or 0),
            title=body.get("title") or "",
            description=body.get("description"),
            priority=body.get("priority") or "medium",
            due_date=parse_iso_date(due) if due else None,
        )
        return ok({"task_id": task_id}, status=201)

    @app.route("/api/tasks", methods=["GET"], endpoint="tasks_list")
    @roles_required(Role.ADMIN, Role.MANAGER, Role.SWAMIJI)
    def list_tasks():
        return ok(tasks.list_all(request.args.get("status") or None))

    @app.route("/api/tasks/mine", methods=["GET"], endpoint="tasks_mine")
    @login_required
    def my_tasks():
        return ok(tasks.list_for_worker(current_user_id()))

    @app.route("/api/tasks/stats", methods=["GET"], endpoint="tasks_stats")
    @login_required
    def task_stats():
        worker_id = int_arg("worker_id", current_user_id())
        return ok(tasks.stats_for_worker(worker_id))

    @app.route("/api/tasks/<int:task_id>/status", methods=["PATCH", "POST"], endpoint="tasks_update_status")
    @login_required
    def update_status(task_id: int):
        task = tasks.update_status(
            current_user_id=current_user_id(),
            task_id=task_id,
            status=json_body().get("status") or "",
        )
        return ok(task)

    @app.route("/api/tasks/<int:task_id>", methods=["DELETE"], endpoint="tasks_delete")
    @roles_required(Role.ADMIN, Role.MANAGER, Role.SWAMIJI)
    def delete_task(task_id: int):
        tasks.delete_task(current_role=current_role(), task_id=task_id)
        return ok({"deleted": task_id})
