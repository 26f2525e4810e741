from __future__ import annotations

from ...core.enums import AttendanceStatus
from ..policy import AttendancePolicy
from .base import CheckOutStrategy, StatusDecision


class CompletedStrategy(CheckOutStrategy):
    """Normal day: between the minimum and the overtime threshold."""

    def decide_checkout(self, *, total_minutes: int, policy: AttendancePolicy) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.COMPLETED)
