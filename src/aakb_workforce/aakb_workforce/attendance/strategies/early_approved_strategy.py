from __future__ import annotations

from ...core.enums import AttendanceStatus
from ..policy import AttendancePolicy
from .base import CheckOutStrategy, StatusDecision


class EarlyApprovedStrategy(CheckOutStrategy):
    """Short day covered by an approved early exit."""

    def decide_checkout(self, *, total_minutes: int, policy: AttendancePolicy) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.EARLY_APPROVED)
