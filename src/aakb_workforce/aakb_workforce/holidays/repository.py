from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Protocol, Sequence

from ..core.enums import HolidayType, RequestStatus
from .model import Holiday, WorkerHoliday


class HolidayRepository(Protocol):
    def create_holiday(
        self,
        *,
        holiday_date: date,
        name: str,
        holiday_type: HolidayType,
        half_day_end_time: Optional[time],
        is_recurring: bool,
    ) -> int:
        raise NotImplementedError

    def delete_holiday(self, holiday_id: int) -> bool:
        raise NotImplementedError

    def list_holidays(self) -> Sequence[Holiday]:
        raise NotImplementedError

    def create_day_off(
        self,
        *,
        worker_id: int,
        holiday_date: date,
        holiday_type: HolidayType,
        reason: Optional[str],
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def get_day_off(self, request_id: int) -> Optional[WorkerHoliday]:
        raise NotImplementedError

    def get_day_off_for_date(self, worker_id: int, holiday_date: date) -> Optional[WorkerHoliday]:
        raise NotImplementedError

    def list_days_off(
        self,
        *,
        worker_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[RequestStatus] = None,
    ) -> Sequence[WorkerHoliday]:
        raise NotImplementedError

    def decide_day_off(self, *, request_id: int, status: RequestStatus, decided_at: datetime) -> bool:
        raise NotImplementedError
