from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Sequence

from ..core.enums import HolidayType, RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_time
from .model import Holiday, WorkerHoliday
from .repository import HolidayRepository

_DAY_OFF_COLUMNS = "request_id, worker_id, holiday_date, holiday_type, reason, status, created_at, decided_at"


def _to_day_off(r: dict) -> WorkerHoliday:
    return WorkerHoliday(
        request_id=int(r["request_id"]),
        worker_id=int(r["worker_id"]),
        holiday_date=r["holiday_date"],
        holiday_type=HolidayType(r["holiday_type"]),
        reason=r.get("reason"),
        status=RequestStatus(r["status"]),
        created_at=r["created_at"],
        decided_at=r.get("decided_at"),
    )


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_holiday(
        self,
        *,
        holiday_date: date,
        name: str,
        holiday_type: HolidayType,
        half_day_end_time: Optional[time],
        is_recurring: bool,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO holidays(holiday_date, name, holiday_type, half_day_end_time, is_recurring)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (holiday_date, name, holiday_type.value, half_day_end_time, 1 if is_recurring else 0),
            )
            return int(cur.lastrowid)

    def delete_holiday(self, holiday_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM holidays WHERE holiday_id=%s", (int(holiday_id),))
            return cur.rowcount > 0

    def list_holidays(self) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT holiday_id, holiday_date, name, holiday_type, half_day_end_time, is_recurring
                FROM holidays
                ORDER BY holiday_date ASC
                """
            )
            return [
                Holiday(
                    holiday_id=int(r["holiday_id"]),
                    holiday_date=r["holiday_date"],
                    name=r["name"],
                    holiday_type=HolidayType(r["holiday_type"]),
                    half_day_end_time=to_time(r.get("half_day_end_time")),
                    is_recurring=bool(r.get("is_recurring")),
                )
                for r in fetchall(cur)
            ]

    def create_day_off(
        self,
        *,
        worker_id: int,
        holiday_date: date,
        holiday_type: HolidayType,
        reason: Optional[str],
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO worker_holidays(worker_id, holiday_date, holiday_type, reason, status, created_at)
                VALUES(%s,%s,%s,%s,'pending',%s)
                """,
                (int(worker_id), holiday_date, holiday_type.value, reason, created_at),
            )
            return int(cur.lastrowid)

    def get_day_off(self, request_id: int) -> Optional[WorkerHoliday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_DAY_OFF_COLUMNS} FROM worker_holidays WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _to_day_off(r) if r else None

    def get_day_off_for_date(self, worker_id: int, holiday_date: date) -> Optional[WorkerHoliday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_DAY_OFF_COLUMNS} FROM worker_holidays WHERE worker_id=%s AND holiday_date=%s",
                (int(worker_id), holiday_date),
            )
            r = fetchone(cur)
            return _to_day_off(r) if r else None

    def list_days_off(
        self,
        *,
        worker_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[RequestStatus] = None,
    ) -> Sequence[WorkerHoliday]:
        clauses: list[str] = []
        params: list[object] = []
        if worker_id is not None:
            clauses.append("worker_id=%s")
            params.append(int(worker_id))
        if start_date is not None:
            clauses.append("holiday_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("holiday_date <= %s")
            params.append(end_date)
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_DAY_OFF_COLUMNS} FROM worker_holidays {where} ORDER BY holiday_date DESC",
                tuple(params),
            )
            return [_to_day_off(r) for r in fetchall(cur)]

    def decide_day_off(self, *, request_id: int, status: RequestStatus, decided_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE worker_holidays SET status=%s, decided_at=%s
                WHERE request_id=%s AND status='pending'
                """,
                (status.value, decided_at, int(request_id)),
            )
            return cur.rowcount > 0
