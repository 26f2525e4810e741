from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_enum, require_non_empty
from ..core.enums import NotificationType, Role, TaskPriority, TaskStatus
from ..core.exceptions import AuthorizationError, NotFoundError
from ..notifications.service import NotificationService
from ..users.repository import UserRepository
from .model import Task, TaskStats
from .repository import TaskRepository

logger = logging.getLogger(__name__)

_ASSIGNERS = {Role.ADMIN, Role.MANAGER, Role.SWAMIJI}


class TaskService:
    def __init__(self, tasks: TaskRepository, users: UserRepository, notifications: NotificationService):
        self._tasks = tasks
        self._users = users
        self._notifications = notifications

    def assign_task(
        self,
        *,
        current_role: Role,
        assigned_by: int,
        assigned_to: int,
        title: str,
        description: Optional[str] = None,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        due_date: Optional[date] = None,
        now: datetime | None = None,
    ) -> int:
        if Role(current_role) not in _ASSIGNERS:
            raise AuthorizationError("You do not have permission to assign tasks")
        title = require_non_empty(title, "Title")
        priority = require_enum(TaskPriority, priority, "priority")

        assignee = self._users.get_by_id(assigned_to)
        if not assignee or not assignee.is_active:
            raise NotFoundError("Assignee not found")

        task_id = self._tasks.create(
            title=title,
            description=(description or "").strip() or None,
            assigned_to=int(assigned_to),
            assigned_by=int(assigned_by),
            priority=priority,
            due_date=due_date,
            created_at=now or now_local(),
        )
        logger.info("Task %s assigned to user %s", task_id, assigned_to)
        due = f" (due {due_date.isoformat()})" if due_date else ""
        self._safe_notify(
            lambda: self._notifications.notify_user(
                int(assigned_to),
                "New task",
                f"{title}{due}",
                type=NotificationType.TASK,
                data={"task_id": task_id, "priority": priority.value},
            )
        )
        return task_id

    def update_status(
        self,
        *,
        current_user_id: int,
        task_id: int,
        status: TaskStatus | str,
        now: datetime | None = None,
    ) -> Task:
        status = require_enum(TaskStatus, status, "status")
        task = self._tasks.get(task_id)
        if not task:
            raise NotFoundError("Task not found")
        if current_user_id not in (task.assigned_to, task.assigned_by):
            raise AuthorizationError("You cannot update this task")
        if status == task.status:
            return task

        completed_at = (now or now_local()) if status == TaskStatus.COMPLETED else None
        self._tasks.update_status(task_id=task_id, status=status, completed_at=completed_at)
        updated = self._tasks.get(task_id) or task

        if status == TaskStatus.COMPLETED:
            logger.info("Task %s completed", task_id)
            self._safe_notify(
                lambda: self._notifications.notify_overseers(
                    "Task completed",
                    f"{task.title} was marked completed",
                    type=NotificationType.TASK,
                    data={"task_id": task_id},
                )
            )
        return updated

    def delete_task(self, *, current_role: Role, task_id: int) -> None:
        if Role(current_role) not in _ASSIGNERS:
            raise AuthorizationError("You do not have permission")
        if not self._tasks.delete(task_id):
            raise NotFoundError("Task not found")

    def list_for_worker(self, worker_id: int) -> list[Task]:
        return list(self._tasks.list_for_worker(worker_id))

    def list_all(self, status: TaskStatus | str | None = None) -> list[Task]:
        if status is not None:
            status = require_enum(TaskStatus, status, "status")
        return list(self._tasks.list_all(status=status))

    def stats_for_worker(self, worker_id: int, *, today: date | None = None) -> TaskStats:
        today = today or now_local().date()
        tasks = self._tasks.list_for_worker(worker_id)
        return TaskStats(
            total=len(tasks),
            completed=sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
            overdue=sum(1 for t in tasks if t.is_overdue(today)),
        )

    @staticmethod
    def _safe_notify(send) -> None:
        try:
            send()
        except Exception:
            logger.warning("Task notification failed", exc_info=True)
