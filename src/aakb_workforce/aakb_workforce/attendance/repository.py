from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, WorkMode
from .model import AttendanceRecord, AttendanceReportRow, TimeLogSegment


class DaySessionWriter(Protocol):
    """Writes performed inside one attendance transaction.

    Everything done through one writer commits or rolls back together.
    """

    def lock_for_worker_and_date(self, worker_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def lock_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def lock_open_for_worker(self, worker_id: int) -> Optional[AttendanceRecord]:
        """Latest checked-in, not checked-out record of the worker, whatever its work date."""

        raise NotImplementedError

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
        """Insert keyed on (worker_id, work_date); an existing check-in is never overwritten."""

        raise NotImplementedError

    def get_open_segment(self, worker_id: int) -> Optional[TimeLogSegment]:
        raise NotImplementedError

    def close_segment(self, *, segment_id: int, end_time: datetime, duration_minutes: int) -> None:
        raise NotImplementedError

    def open_segment(
        self,
        *,
        worker_id: int,
        work_date: date,
        mode: WorkMode,
        start_time: datetime,
        notes: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update_mode(self, *, attendance_id: int, mode: WorkMode, status: AttendanceStatus) -> None:
        raise NotImplementedError

    def mark_early_exit_requested(self, *, attendance_id: int, reason: str) -> None:
        raise NotImplementedError

    def mark_early_exit_approved(self, *, attendance_id: int, approved_at: datetime) -> None:
        raise NotImplementedError

    def finalize(self, *, attendance_id: int, check_out_time: datetime, status: AttendanceStatus) -> None:
        raise NotImplementedError


class AttendanceRepository(Protocol):
    def transaction(self) -> AbstractContextManager[DaySessionWriter]:
        raise NotImplementedError

    def get_for_worker_and_date(self, worker_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_recent_for_worker(self, worker_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_segments(self, worker_id: int, work_date: date) -> Sequence[TimeLogSegment]:
        raise NotImplementedError

    def list_pending_early_exits(self, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def get_report_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        worker_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        raise NotImplementedError
