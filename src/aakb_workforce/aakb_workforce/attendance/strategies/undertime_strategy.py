from __future__ import annotations

from ...core.enums import AttendanceStatus
from ..policy import AttendancePolicy
from .base import CheckOutStrategy, StatusDecision


class UndertimeStrategy(CheckOutStrategy):
    def decide_checkout(self, *, total_minutes: int, policy: AttendancePolicy) -> StatusDecision:
        short = policy.min_minutes - total_minutes
        return StatusDecision(status=AttendanceStatus.UNDERTIME, note=f"{short} minutes short")
