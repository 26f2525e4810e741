from __future__ import annotations

from ...core.enums import AttendanceStatus
from ..policy import AttendancePolicy
from .base import CheckOutStrategy, StatusDecision


class OvertimeStrategy(CheckOutStrategy):
    def decide_checkout(self, *, total_minutes: int, policy: AttendancePolicy) -> StatusDecision:
        extra = total_minutes - policy.overtime_minutes
        return StatusDecision(status=AttendanceStatus.OVERTIME, note=f"{extra} minutes over")
