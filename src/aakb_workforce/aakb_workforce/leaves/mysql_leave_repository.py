from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import LeaveType, RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import LeaveRequest
from .repository import LeaveRepository

_COLUMNS = """
    request_id, worker_id, start_date, end_date, leave_type, reason, status,
    created_at, decided_by, decided_at, rejection_reason
"""


def _to_leave(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        worker_id=int(r["worker_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        leave_type=LeaveType(r["leave_type"]),
        reason=r["reason"],
        status=RequestStatus(r["status"]),
        created_at=r["created_at"],
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
        rejection_reason=r.get("rejection_reason"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        worker_id: int,
        start_date: date,
        end_date: date,
        leave_type: LeaveType,
        reason: str,
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(worker_id, start_date, end_date, leave_type, reason, status, created_at)
                VALUES(%s,%s,%s,%s,%s,'pending',%s)
                """,
                (int(worker_id), start_date, end_date, leave_type.value, reason, created_at),
            )
            return int(cur.lastrowid)

    def get(self, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM leave_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _to_leave(r) if r else None

    def decide(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: int,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, decided_by=%s, decided_at=%s, rejection_reason=%s
                WHERE request_id=%s AND status='pending'
                """,
                (status.value, int(decided_by), decided_at, rejection_reason, int(request_id)),
            )
            return cur.rowcount > 0

    def list_for_worker(self, worker_id: int) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM leave_requests WHERE worker_id=%s ORDER BY created_at DESC",
                (int(worker_id),),
            )
            return [_to_leave(r) for r in fetchall(cur)]

    def list_by_status(self, status: Optional[RequestStatus]) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            if status is None:
                cur.execute(f"SELECT {_COLUMNS} FROM leave_requests ORDER BY created_at DESC")
            else:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM leave_requests WHERE status=%s ORDER BY created_at DESC",
                    (status.value,),
                )
            return [_to_leave(r) for r in fetchall(cur)]

    def list_approved_overlapping(
        self, *, start_date: date, end_date: date, worker_id: Optional[int] = None
    ) -> Sequence[LeaveRequest]:
        clauses = ["status='approved'", "start_date <= %s", "end_date >= %s"]
        params: list[object] = [end_date, start_date]
        if worker_id is not None:
            clauses.append("worker_id=%s")
            params.append(int(worker_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM leave_requests WHERE {' AND '.join(clauses)}",
                tuple(params),
            )
            return [_to_leave(r) for r in fetchall(cur)]
