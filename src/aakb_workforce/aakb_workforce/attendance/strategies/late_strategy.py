from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from ..policy import AttendancePolicy
from .base import CheckInStrategy, StatusDecision


class LateStrategy(CheckInStrategy):
    """Late check-in."""

    def decide_checkin(self, *, now: datetime, policy: AttendancePolicy) -> StatusDecision:
        return StatusDecision(
            status=AttendanceStatus.LATE,
            note=f"after {policy.late_cutoff.strftime('%H:%M')}",
        )
