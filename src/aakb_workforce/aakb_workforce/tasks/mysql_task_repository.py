from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import TaskPriority, TaskStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Task
from .repository import TaskRepository

_COLUMNS = """
    task_id, title, description, assigned_to, assigned_by, priority, status,
    due_date, created_at, completed_at
"""


def _to_task(r: dict) -> Task:
    return Task(
        task_id=int(r["task_id"]),
        title=r["title"],
        description=r.get("description"),
        assigned_to=r.get("assigned_to"),
        assigned_by=r.get("assigned_by"),
        priority=TaskPriority(r["priority"]),
        status=TaskStatus(r["status"]),
        due_date=r.get("due_date"),
        created_at=r["created_at"],
        completed_at=r.get("completed_at"),
    )


class MySQLTaskRepository(TaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tasks(title, description, assigned_to, assigned_by, priority, status, due_date, created_at)
                VALUES(%s,%s,%s,%s,%s,'pending',%s,%s)
                """,
                (title, description, int(assigned_to), int(assigned_by), priority.value, due_date, created_at),
            )
            return int(cur.lastrowid)

    def get(self, task_id: int) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM tasks WHERE task_id=%s", (int(task_id),))
            r = fetchone(cur)
            return _to_task(r) if r else None

    def update_status(self, *, task_id: int, status: TaskStatus, completed_at: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE tasks SET status=%s, completed_at=%s WHERE task_id=%s",
                (status.value, completed_at, int(task_id)),
            )
            return cur.rowcount > 0

    def delete(self, task_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM tasks WHERE task_id=%s", (int(task_id),))
            return cur.rowcount > 0

    def list_for_worker(self, worker_id: int) -> Sequence[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM tasks
                WHERE assigned_to=%s
                ORDER BY status='completed' ASC, due_date IS NULL ASC, due_date ASC, created_at DESC
                """,
                (int(worker_id),),
            )
            return [_to_task(r) for r in fetchall(cur)]

    def list_all(self, *, status: Optional[TaskStatus] = None) -> Sequence[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            if status is None:
                cur.execute(f"SELECT {_COLUMNS} FROM tasks ORDER BY created_at DESC")
            else:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM tasks WHERE status=%s ORDER BY created_at DESC",
                    (status.value,),
                )
            return [_to_task(r) for r in fetchall(cur)]
