from __future__ import annotations

from dataclasses import dataclass
from datetime import time, timedelta

from ..core.constants import DEFAULT_LATE_CUTOFF, MIN_WORK_HOURS, OVERTIME_HOURS


@dataclass(frozen=True)
class AttendancePolicy:
    """Thresholds used to derive attendance status."""

    late_cutoff: time = DEFAULT_LATE_CUTOFF
    min_hours: int = MIN_WORK_HOURS
    overtime_hours: int = OVERTIME_HOURS

    @property
    def min_minutes(self) -> int:
        return self.min_hours * 60

    @property
    def overtime_minutes(self) -> int:
        return self.overtime_hours * 60

    @property
    def min_duration(self) -> timedelta:
        return timedelta(hours=self.min_hours)

    @property
    def overtime_duration(self) -> timedelta:
        return timedelta(hours=self.overtime_hours)
