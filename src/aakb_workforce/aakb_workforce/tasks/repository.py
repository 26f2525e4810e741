from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import TaskPriority, TaskStatus
from .model import Task


class TaskRepository(Protocol):
    def create(
        self,
        *,
        title: str,
        description: Optional[str],
        assigned_to: int,
        assigned_by: int,
        priority: TaskPriority,
        due_date: Optional[date],
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def get(self, task_id: int) -> Optional[Task]:
        raise NotImplementedError

    def update_status(self, *, task_id: int, status: TaskStatus, completed_at: Optional[datetime]) -> bool:
        raise NotImplementedError

    def delete(self, task_id: int) -> bool:
        raise NotImplementedError

    def list_for_worker(self, worker_id: int) -> Sequence[Task]:
        raise NotImplementedError

    def list_all(self, *, status: Optional[TaskStatus] = None) -> Sequence[Task]:
        raise NotImplementedError
