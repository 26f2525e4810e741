from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from ..policy import AttendancePolicy
from .base import CheckInStrategy, StatusDecision


class PresentStrategy(CheckInStrategy):
    """Check-in at or before the late cutoff."""

    def decide_checkin(self, *, now: datetime, policy: AttendancePolicy) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
