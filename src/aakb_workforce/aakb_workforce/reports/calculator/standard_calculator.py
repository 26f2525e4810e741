from __future__ import annotations

from ...attendance.model import AttendanceReportRow
from ...common.datetime_utils import round_minutes
from .base import WorkedTimeCalculator


class StandardWorkedTimeCalculator(WorkedTimeCalculator):
    """Standard rule: out - in, not below 0; open or absent days count 0."""

    def worked_minutes(self, row: AttendanceReportRow) -> int:
        if not row.check_in_time or not row.check_out_time:
            return 0
        return max(round_minutes(row.check_out_time - row.check_in_time), 0)
