from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytz

from ..core.constants import DEFAULT_ORG_TIMEZONE
from ..core.exceptions import ValidationError

_org_tz = pytz.timezone(DEFAULT_ORG_TIMEZONE)


def set_org_timezone(name: str) -> None:
    """Select the organization timezone used for every wall-clock comparison."""
    global _org_tz
    try:
        _org_tz = pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValidationError(f"Unknown timezone: {name}")


def org_timezone():
    return _org_tz


def now_local() -> datetime:
    """Current wall-clock time in the organization timezone (naive).

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(_org_tz).replace(tzinfo=None)


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Invalid date (YYYY-MM-DD)")


def parse_hhmm(value: str) -> time:
    try:
        return datetime.strptime((value or "").strip(), "%H:%M").time()
    except ValueError:
        raise ValidationError("Invalid time (HH:MM)")


def round_minutes(delta: timedelta) -> int:
    """Whole minutes in ``delta``, halves rounded up."""
    seconds = delta.total_seconds()
    return int((seconds + 30) // 60)


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def iter_dates(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
