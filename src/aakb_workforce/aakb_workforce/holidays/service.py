from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from ..common.datetime_utils import now_local, parse_hhmm
from ..common.validators import require_enum, require_non_empty
from ..core.constants import (
    HOLIDAY_SETTING_ALLOW_CONSECUTIVE,
    HOLIDAY_SETTING_MONTHLY_ALLOWED,
    HOLIDAY_SETTING_SUNDAY_END_TIME,
    HOLIDAY_SETTING_SUNDAY_HALF_DAY,
)
from ..core.enums import HolidayType, NotificationType, RequestStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..notifications.service import NotificationService
from ..settings.repository import SettingsRepository
from .model import Holiday, HolidaySettings, WorkerHoliday
from .repository import HolidayRepository

logger = logging.getLogger(__name__)

_DECIDERS = {Role.SWAMIJI, Role.ADMIN}


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _month_bounds(day: date) -> tuple[date, date]:
    first = day.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    return first, next_first - timedelta(days=1)


class HolidayService:
    """Organization holidays, worker day-off requests and Sunday half-days."""

    def __init__(
        self,
        holidays: HolidayRepository,
        settings: SettingsRepository,
        notifications: NotificationService,
    ):
        self._holidays = holidays
        self._settings = settings
        self._notifications = notifications

    # -------------------------------------------------------------- settings

    def get_settings(self) -> HolidaySettings:
        defaults = HolidaySettings()
        raw = self._settings.all()

        monthly = defaults.monthly_holidays_allowed
        if raw.get(HOLIDAY_SETTING_MONTHLY_ALLOWED):
            try:
                monthly = int(raw[HOLIDAY_SETTING_MONTHLY_ALLOWED])
            except ValueError:
                logger.warning("Ignoring invalid %s setting", HOLIDAY_SETTING_MONTHLY_ALLOWED)

        sunday_end = defaults.sunday_end_time
        if raw.get(HOLIDAY_SETTING_SUNDAY_END_TIME):
            try:
                sunday_end = parse_hhmm(raw[HOLIDAY_SETTING_SUNDAY_END_TIME][:5])
            except ValidationError:
                logger.warning("Ignoring invalid %s setting", HOLIDAY_SETTING_SUNDAY_END_TIME)

        return HolidaySettings(
            monthly_holidays_allowed=monthly,
            sunday_half_day=_as_bool(raw.get(HOLIDAY_SETTING_SUNDAY_HALF_DAY), defaults.sunday_half_day),
            sunday_end_time=sunday_end,
            allow_consecutive_holidays=_as_bool(
                raw.get(HOLIDAY_SETTING_ALLOW_CONSECUTIVE), defaults.allow_consecutive_holidays
            ),
        )

    def update_settings(
        self,
        *,
        current_role: Role,
        monthly_holidays_allowed: Optional[int] = None,
        sunday_half_day: Optional[bool] = None,
        sunday_end_time: Optional[str] = None,
        allow_consecutive_holidays: Optional[bool] = None,
    ) -> HolidaySettings:
        if Role(current_role) != Role.ADMIN:
            raise AuthorizationError("Only admins can change holiday settings")

        if monthly_holidays_allowed is not None:
            if int(monthly_holidays_allowed) < 0:
                raise ValidationError("Monthly holidays cannot be negative")
            self._settings.set(HOLIDAY_SETTING_MONTHLY_ALLOWED, str(int(monthly_holidays_allowed)))
        if sunday_half_day is not None:
            self._settings.set(HOLIDAY_SETTING_SUNDAY_HALF_DAY, "true" if sunday_half_day else "false")
        if sunday_end_time is not None:
            self._settings.set(HOLIDAY_SETTING_SUNDAY_END_TIME, parse_hhmm(sunday_end_time).strftime("%H:%M"))
        if allow_consecutive_holidays is not None:
            self._settings.set(HOLIDAY_SETTING_ALLOW_CONSECUTIVE, "true" if allow_consecutive_holidays else "false")
        return self.get_settings()

    # -------------------------------------------------------------- organization holidays

    def add_holiday(
        self,
        *,
        current_role: Role,
        holiday_date: date,
        name: str,
        holiday_type: HolidayType | str = HolidayType.FULL,
        half_day_end_time: Optional[str] = None,
        is_recurring: bool = False,
    ) -> int:
        if Role(current_role) != Role.ADMIN:
            raise AuthorizationError("Only admins can add holidays")
        name = require_non_empty(name, "Holiday name")
        holiday_type = require_enum(HolidayType, holiday_type, "holiday type")

        end_time: Optional[time] = None
        if holiday_type == HolidayType.HALF:
            if not half_day_end_time:
                raise ValidationError("Half-day holidays need an end time")
            end_time = parse_hhmm(half_day_end_time)

        holiday_id = self._holidays.create_holiday(
            holiday_date=holiday_date,
            name=name,
            holiday_type=holiday_type,
            half_day_end_time=end_time,
            is_recurring=bool(is_recurring),
        )
        logger.info("Holiday %s added for %s", name, holiday_date.isoformat())
        return holiday_id

    def delete_holiday(self, *, current_role: Role, holiday_id: int) -> None:
        if Role(current_role) != Role.ADMIN:
            raise AuthorizationError("Only admins can delete holidays")
        if not self._holidays.delete_holiday(holiday_id):
            raise NotFoundError("Holiday not found")

    def list_upcoming(self, from_date: date | None = None) -> list[Holiday]:
        from_date = from_date or now_local().date()

        def next_occurrence(h: Holiday) -> date:
            if not h.is_recurring:
                return h.holiday_date
            candidate = self._on_year(h.holiday_date, from_date.year)
            if candidate < from_date:
                candidate = self._on_year(h.holiday_date, from_date.year + 1)
            return candidate

        upcoming = [h for h in self._holidays.list_holidays() if next_occurrence(h) >= from_date]
        return sorted(upcoming, key=next_occurrence)

    def holiday_on(self, day: date) -> Optional[Holiday]:
        for h in self._holidays.list_holidays():
            if h.falls_on(day):
                return h
        return None

    @staticmethod
    def _on_year(d: date, year: int) -> date:
        try:
            return d.replace(year=year)
        except ValueError:
            # Feb 29 on a non-leap year
            return d.replace(year=year, day=28)

    # -------------------------------------------------------------- worker days off

    def request_day_off(
        self,
        *,
        current_role: Role,
        worker_id: int,
        holiday_date: date,
        holiday_type: HolidayType | str = HolidayType.FULL,
        reason: Optional[str] = None,
        now: datetime | None = None,
    ) -> int:
        if Role(current_role) != Role.WORKER:
            raise AuthorizationError("Only workers can request days off")
        now = now or now_local()
        if holiday_date < now.date():
            raise ValidationError("Cannot request a day off in the past")
        holiday_type = require_enum(HolidayType, holiday_type, "holiday type")

        if self._holidays.get_day_off_for_date(worker_id, holiday_date):
            raise ValidationError("You already requested this date")

        settings = self.get_settings()
        first, last = _month_bounds(holiday_date)
        taken = [
            d
            for d in self._holidays.list_days_off(worker_id=worker_id, start_date=first, end_date=last)
            if d.status != RequestStatus.REJECTED
        ]
        if len(taken) >= settings.monthly_holidays_allowed:
            raise ValidationError(
                f"Monthly limit reached ({settings.monthly_holidays_allowed} days off per month)"
            )

        if not settings.allow_consecutive_holidays:
            neighbours = {holiday_date - timedelta(days=1), holiday_date + timedelta(days=1)}
            nearby = self._holidays.list_days_off(
                worker_id=worker_id,
                start_date=min(neighbours),
                end_date=max(neighbours),
            )
            if any(d.holiday_date in neighbours and d.status != RequestStatus.REJECTED for d in nearby):
                raise ValidationError("Consecutive days off are not allowed")

        request_id = self._holidays.create_day_off(
            worker_id=worker_id,
            holiday_date=holiday_date,
            holiday_type=holiday_type,
            reason=(reason or "").strip() or None,
            created_at=now,
        )
        logger.info("Day-off request %s created by worker %s", request_id, worker_id)
        try:
            self._notifications.notify_overseers(
                "Day-off request",
                f"Day off requested for {holiday_date.isoformat()} ({holiday_type.value})",
                type=NotificationType.LEAVE,
                data={"request_id": request_id, "worker_id": worker_id},
            )
        except Exception:
            logger.warning("Day-off notification failed for request %s", request_id, exc_info=True)
        return request_id

    def decide_day_off(self, *, current_role: Role, request_id: int, approve: bool) -> None:
        if Role(current_role) not in _DECIDERS:
            raise AuthorizationError("You do not have permission")

        req = self._holidays.get_day_off(request_id)
        if not req:
            raise NotFoundError("Day-off request not found")
        if req.status != RequestStatus.PENDING:
            raise ValidationError("Request has already been processed")

        status = RequestStatus.APPROVED if approve else RequestStatus.REJECTED
        if not self._holidays.decide_day_off(request_id=request_id, status=status, decided_at=now_local()):
            raise ValidationError("Request has already been processed")

        try:
            self._notifications.notify_user(
                req.worker_id,
                f"Day off {status.value}",
                f"Your day off on {req.holiday_date.isoformat()} was {status.value}",
                type=NotificationType.LEAVE,
                data={"request_id": request_id},
            )
        except Exception:
            logger.warning("Day-off decision notification failed for request %s", request_id, exc_info=True)

    def list_my_days_off(self, worker_id: int) -> list[WorkerHoliday]:
        return list(self._holidays.list_days_off(worker_id=worker_id))

    def list_pending_days_off(self) -> list[WorkerHoliday]:
        return list(self._holidays.list_days_off(status=RequestStatus.PENDING))

    def approved_days_off_between(self, start_date: date, end_date: date) -> list[WorkerHoliday]:
        return list(
            self._holidays.list_days_off(start_date=start_date, end_date=end_date, status=RequestStatus.APPROVED)
        )

    # -------------------------------------------------------------- working hours

    def is_sunday_half_day(self, day: date) -> bool:
        return day.weekday() == 6 and self.get_settings().sunday_half_day

    def working_day_end(self, day: date) -> Optional[time]:
        """Early end of the working day, or None for a normal day."""

        holiday = self.holiday_on(day)
        if holiday and holiday.holiday_type == HolidayType.HALF:
            return holiday.half_day_end_time
        if self.is_sunday_half_day(day):
            return self.get_settings().sunday_end_time
        return None
