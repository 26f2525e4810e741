from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, DayState, DeviceClass, WorkMode


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one worker's attendance for one calendar date."""

    attendance_id: int
    worker_id: int
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    mode: WorkMode = WorkMode.OFFICE
    early_exit_requested: bool = False
    early_exit_reason: Optional[str] = None
    early_exit_approved: bool = False
    early_exit_approved_at: Optional[datetime] = None
    device_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.check_in_time is not None and self.check_out_time is None

    @property
    def day_state(self) -> DayState:
        if self.check_in_time is None:
            return DayState.NOT_STARTED
        if self.check_out_time is not None:
            return DayState.ENDED
        return {
            WorkMode.FIELD: DayState.FIELD_MODE,
            WorkMode.EVENT: DayState.EVENT_MODE,
        }.get(self.mode, DayState.WORKING)


@dataclass(frozen=True)
class TimeLogSegment:
    """A contiguous interval spent in one mode; end_time None means still open."""

    segment_id: int
    worker_id: int
    work_date: date
    mode: WorkMode
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class DeviceContext:
    """The device a worker starts the day from.

    Only ``fingerprint`` is compared against the registered kiosk;
    ``device_class`` is reported by the client and kept for logs.
    """

    fingerprint: str
    device_class: DeviceClass = DeviceClass.KIOSK


@dataclass(frozen=True)
class StartDayResult:
    record: AttendanceRecord
    created: bool


@dataclass(frozen=True)
class EarlyExitRequest:
    record: AttendanceRecord
    share_url: Optional[str] = None


@dataclass(frozen=True)
class DaySummary:
    record: AttendanceRecord
    segments: list[TimeLogSegment]
    total_minutes: int
    minutes_by_mode: dict[WorkMode, int] = field(default_factory=dict)

    @property
    def hours_part(self) -> int:
        return self.total_minutes // 60

    @property
    def minutes_part(self) -> int:
        return self.total_minutes % 60


@dataclass(frozen=True)
class AttendanceReportRow:
    """Read-model for reports/exports (query-optimized)."""

    worker_id: int
    name: str
    username: str
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    mode: WorkMode = WorkMode.OFFICE
    early_exit_reason: Optional[str] = None
