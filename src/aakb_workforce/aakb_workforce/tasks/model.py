from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import TaskPriority, TaskStatus


@dataclass(frozen=True)
class Task:
    task_id: int
    title: str
    description: Optional[str]
    assigned_to: Optional[int]
    assigned_by: Optional[int]
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[date]
    created_at: datetime
    completed_at: Optional[datetime] = None

    def is_overdue(self, today: date) -> bool:
        return self.status != TaskStatus.COMPLETED and self.due_date is not None and self.due_date < today


@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    overdue: int
