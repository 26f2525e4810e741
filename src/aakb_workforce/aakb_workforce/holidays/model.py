from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.constants import DEFAULT_MONTHLY_HOLIDAYS, DEFAULT_SUNDAY_END_TIME
from ..core.enums import HolidayType, RequestStatus


@dataclass(frozen=True)
class Holiday:
    """Organization-wide holiday."""

    holiday_id: int
    holiday_date: date
    name: str
    holiday_type: HolidayType = HolidayType.FULL
    half_day_end_time: Optional[time] = None
    is_recurring: bool = False

    def falls_on(self, day: date) -> bool:
        if self.is_recurring:
            return (self.holiday_date.month, self.holiday_date.day) == (day.month, day.day)
        return self.holiday_date == day


@dataclass(frozen=True)
class WorkerHoliday:
    """A worker's day-off request."""

    request_id: int
    worker_id: int
    holiday_date: date
    holiday_type: HolidayType
    reason: Optional[str]
    status: RequestStatus
    created_at: datetime
    decided_at: Optional[datetime] = None


@dataclass(frozen=True)
class HolidaySettings:
    monthly_holidays_allowed: int = DEFAULT_MONTHLY_HOLIDAYS
    sunday_half_day: bool = False
    sunday_end_time: time = DEFAULT_SUNDAY_END_TIME
    allow_consecutive_holidays: bool = True
