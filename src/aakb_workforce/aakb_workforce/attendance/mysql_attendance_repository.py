from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional, Sequence

from ..core.enums import AttendanceStatus, WorkMode
from ..core.exceptions import StoreUnavailable
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord, AttendanceReportRow, TimeLogSegment
from .repository import AttendanceRepository, DaySessionWriter

_RECORD_COLUMNS = """
    attendance_id, worker_id, work_date, check_in_time, check_out_time, status, mode,
    early_exit_requested, early_exit_reason, early_exit_approved, early_exit_approved_at, device_id
"""

_SEGMENT_COLUMNS = "segment_id, worker_id, work_date, mode, start_time, end_time, duration_minutes, notes"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        worker_id=int(r["worker_id"]),
        work_date=r["work_date"],
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        status=AttendanceStatus(r["status"]),
        mode=WorkMode(r.get("mode") or WorkMode.OFFICE.value),
        early_exit_requested=bool(r.get("early_exit_requested")),
        early_exit_reason=r.get("early_exit_reason"),
        early_exit_approved=bool(r.get("early_exit_approved")),
        early_exit_approved_at=r.get("early_exit_approved_at"),
        device_id=r.get("device_id"),
    )


def _to_segment(r: dict) -> TimeLogSegment:
    duration = r.get("duration_minutes")
    return TimeLogSegment(
        segment_id=int(r["segment_id"]),
        worker_id=int(r["worker_id"]),
        work_date=r["work_date"],
        mode=WorkMode(r["mode"]),
        start_time=r["start_time"],
        end_time=r.get("end_time"),
        duration_minutes=int(duration) if duration is not None else None,
        notes=r.get("notes"),
    )


class _MySQLDaySessionWriter(DaySessionWriter):
    """Bound to the cursor of one open transaction."""

    def __init__(self, cur):
        self._cur = cur

    def lock_for_worker_and_date(self, worker_id: int, work_date: date) -> Optional[AttendanceRecord]:
        self._cur.execute(
            f"SELECT {_RECORD_COLUMNS} FROM attendance WHERE worker_id=%s AND work_date=%s FOR UPDATE",
            (worker_id, work_date),
        )
        r = fetchone(self._cur)
        return _to_record(r) if r else None

    def lock_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        self._cur.execute(
            f"SELECT {_RECORD_COLUMNS} FROM attendance WHERE attendance_id=%s FOR UPDATE",
            (int(attendance_id),),
        )
        r = fetchone(self._cur)
        return _to_record(r) if r else None

    def lock_open_for_worker(self, worker_id: int) -> Optional[AttendanceRecord]:
        self._cur.execute(
            f"""
            SELECT {_RECORD_COLUMNS} FROM attendance
            WHERE worker_id=%s AND check_in_time IS NOT NULL AND check_out_time IS NULL
            ORDER BY work_date DESC
            LIMIT 1
            FOR UPDATE
            """,
            (worker_id,),
        )
        r = fetchone(self._cur)
        return _to_record(r) if r else None

    def upsert_checkin(
        self,
        *,
        worker_id: int,
        work_date: date,
        check_in_time: datetime,
        status: AttendanceStatus,
        mode: WorkMode,
        device_id: Optional[str],
    ) -> AttendanceRecord:
        # check_in_time is assigned last so the IS NULL tests above still see the old value.
        self._cur.execute(
            """
            INSERT INTO attendance(worker_id, work_date, check_in_time, status, mode, device_id)
            VALUES(%s,%s,%s,%s,%s,%s)
            ON DUPLICATE KEY UPDATE
                status = IF(check_in_time IS NULL, VALUES(status), status),
                mode = IF(check_in_time IS NULL, VALUES(mode), mode),
                device_id = IF(check_in_time IS NULL, VALUES(device_id), device_id),
                check_in_time = COALESCE(check_in_time, VALUES(check_in_time))
            """,
            (worker_id, work_date, check_in_time, status.value, mode.value, device_id),
        )
        record = self.lock_for_worker_and_date(worker_id, work_date)
        if record is None:
            raise StoreUnavailable("Attendance upsert did not persist")
        return record

    def get_open_segment(self, worker_id: int) -> Optional[TimeLogSegment]:
        self._cur.execute(
            f"""
            SELECT {_SEGMENT_COLUMNS} FROM time_logs
            WHERE worker_id=%s AND end_time IS NULL
            ORDER BY start_time DESC
            LIMIT 1
            FOR UPDATE
            """,
            (worker_id,),
        )
        r = fetchone(self._cur)
        return _to_segment(r) if r else None

    def close_segment(self, *, segment_id: int, end_time: datetime, duration_minutes: int) -> None:
        self._cur.execute(
            "UPDATE time_logs SET end_time=%s, duration_minutes=%s WHERE segment_id=%s AND end_time IS NULL",
            (end_time, int(duration_minutes), int(segment_id)),
        )

    def open_segment(
        self,
        *,
        worker_id: int,
        work_date: date,
        mode: WorkMode,
        start_time: datetime,
        notes: Optional[str] = None,
    ) -> int:
        self._cur.execute(
            """
            INSERT INTO time_logs(worker_id, work_date, mode, start_time, notes)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (worker_id, work_date, mode.value, start_time, notes),
        )
        return int(self._cur.lastrowid)

    def update_mode(self, *, attendance_id: int, mode: WorkMode, status: AttendanceStatus) -> None:
        self._cur.execute(
            "UPDATE attendance SET mode=%s, status=%s WHERE attendance_id=%s",
            (mode.value, status.value, int(attendance_id)),
        )

    def mark_early_exit_requested(self, *, attendance_id: int, reason: str) -> None:
        self._cur.execute(
            "UPDATE attendance SET early_exit_requested=1, early_exit_reason=%s WHERE attendance_id=%s",
            (reason, int(attendance_id)),
        )

    def mark_early_exit_approved(self, *, attendance_id: int, approved_at: datetime) -> None:
        self._cur.execute(
            """
            UPDATE attendance
            SET early_exit_approved=1, early_exit_approved_at=COALESCE(early_exit_approved_at, %s)
            WHERE attendance_id=%s AND early_exit_requested=1
            """,
            (approved_at, int(attendance_id)),
        )

    def finalize(self, *, attendance_id: int, check_out_time: datetime, status: AttendanceStatus) -> None:
        self._cur.execute(
            "UPDATE attendance SET check_out_time=%s, status=%s WHERE attendance_id=%s",
            (check_out_time, status.value, int(attendance_id)),
        )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def transaction(self) -> Iterator[DaySessionWriter]:
        with db_cursor(self._conn_factory) as (_, cur):
            yield _MySQLDaySessionWriter(cur)

    def get_for_worker_and_date(self, worker_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM attendance WHERE worker_id=%s AND work_date=%s",
                (worker_id, work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_RECORD_COLUMNS} FROM attendance WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_recent_for_worker(self, worker_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance
                WHERE worker_id=%s
                ORDER BY work_date DESC
                LIMIT %s
                """,
                (worker_id, int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_segments(self, worker_id: int, work_date: date) -> Sequence[TimeLogSegment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SEGMENT_COLUMNS} FROM time_logs
                WHERE worker_id=%s AND work_date=%s
                ORDER BY start_time ASC
                """,
                (worker_id, work_date),
            )
            return [_to_segment(r) for r in fetchall(cur)]

    def list_pending_early_exits(self, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS} FROM attendance
                WHERE work_date=%s AND early_exit_requested=1 AND early_exit_approved=0
                  AND check_out_time IS NULL
                ORDER BY check_in_time ASC
                """,
                (work_date,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def get_report_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        worker_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        clauses = ["a.work_date BETWEEN %s AND %s"]
        params: list[object] = [start_date, end_date]

        if worker_id is not None:
            clauses.append("u.user_id=%s")
            params.append(int(worker_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    u.user_id, u.name, u.username,
                    a.work_date, a.check_in_time, a.check_out_time, a.status, a.mode, a.early_exit_reason
                FROM attendance a
                JOIN users u ON u.user_id = a.worker_id
                WHERE {where}
                ORDER BY a.work_date DESC, u.user_id ASC
                """,
                tuple(params),
            )
            return [
                AttendanceReportRow(
                    worker_id=int(r["user_id"]),
                    name=r["name"],
                    username=r["username"],
                    work_date=r["work_date"],
                    check_in_time=r.get("check_in_time"),
                    check_out_time=r.get("check_out_time"),
                    status=AttendanceStatus(r["status"]),
                    mode=WorkMode(r.get("mode") or WorkMode.OFFICE.value),
                    early_exit_reason=r.get("early_exit_reason"),
                )
                for r in fetchall(cur)
            ]
