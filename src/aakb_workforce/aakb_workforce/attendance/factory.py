from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .policy import AttendancePolicy
from .strategies.base import CheckInStrategy, CheckOutStrategy
from .strategies.completed_strategy import CompletedStrategy
from .strategies.early_approved_strategy import EarlyApprovedStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.overtime_strategy import OvertimeStrategy
from .strategies.present_strategy import PresentStrategy
from .strategies.undertime_strategy import UndertimeStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, now: datetime, policy: AttendancePolicy) -> CheckInStrategy:
        if now.time() > policy.late_cutoff:
            return LateStrategy()
        return PresentStrategy()

    def for_checkout(
        self,
        *,
        elapsed: timedelta,
        early_exit_approved: bool,
        policy: AttendancePolicy,
    ) -> CheckOutStrategy:
        # Exact elapsed time, not rounded minutes: 7h59m40s is still short.
        # An approved early exit wins over undertime.
        if elapsed < policy.min_duration:
            if early_exit_approved:
                return EarlyApprovedStrategy()
            return UndertimeStrategy()
        if elapsed > policy.overtime_duration:
            return OvertimeStrategy()
        return CompletedStrategy()
