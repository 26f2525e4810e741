from __future__ import annotations

import csv
import io
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..attendance.model import AttendanceReportRow
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import format_minutes, iter_dates, now_local
from ..core.enums import AttendanceStatus, HolidayType, Role
from ..core.exceptions import ValidationError
from ..holidays.service import HolidayService
from ..leaves.service import LeaveService
from ..users.repository import UserRepository
from .calculator.base import WorkedTimeCalculator
from .calculator.standard_calculator import StandardWorkedTimeCalculator

CSV_COLUMNS = [
    "worker_id",
    "name",
    "username",
    "work_date",
    "check_in",
    "check_out",
    "mode",
    "worked_hours",
    "status",
    "early_exit_reason",
]


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]


class AttendanceReportService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        holidays: HolidayService,
        leaves: LeaveService,
        *,
        calculator: Optional[WorkedTimeCalculator] = None,
    ):
        self._attendance = attendance
        self._users = users
        self._holidays = holidays
        self._leaves = leaves
        self._calculator = calculator or StandardWorkedTimeCalculator()

    def build_attendance_report(
        self,
        *,
        start: date,
        end: date,
        worker_id: Optional[int] = None,
        today: date | None = None,
    ) -> ReportData:
        if end < start:
            raise ValidationError("End date cannot be before start date")

        rows = list(self._attendance.get_report_rows(start_date=start, end_date=end, worker_id=worker_id))
        rows.extend(self._absent_rows(start=start, end=end, worker_id=worker_id, existing=rows, today=today))
        rows.sort(key=lambda r: (r.work_date, r.worker_id), reverse=True)

        summary_map: dict[int, dict] = {}
        out_rows: list[dict] = []

        for r in rows:
            minutes = self._calculator.worked_minutes(r)
            out_rows.append(
                {
                    "worker_id": r.worker_id,
                    "name": r.name,
                    "username": r.username,
                    "work_date": r.work_date.strftime("%Y-%m-%d"),
                    "check_in": r.check_in_time.strftime("%H:%M") if r.check_in_time else "-",
                    "check_out": r.check_out_time.strftime("%H:%M") if r.check_out_time else "-",
                    "mode": r.mode.value,
                    "worked_hours": format_minutes(minutes),
                    "status": r.status.value,
                    "early_exit_reason": r.early_exit_reason or "",
                }
            )

            s = summary_map.get(r.worker_id)
            if not s:
                s = {
                    "worker_id": r.worker_id,
                    "name": r.name,
                    "username": r.username,
                    "total_minutes": 0,
                    "statuses": Counter(),
                }
                summary_map[r.worker_id] = s
            s["total_minutes"] += minutes
            s["statuses"][r.status.value] += 1

        summary = []
        for s in sorted(summary_map.values(), key=lambda x: x["total_minutes"], reverse=True):
            summary.append(
                {
                    "worker_id": s["worker_id"],
                    "name": s["name"],
                    "username": s["username"],
                    "total_minutes": s["total_minutes"],
                    "total_hours": format_minutes(s["total_minutes"]),
                    "status_counts": dict(s["statuses"]),
                }
            )
        return ReportData(rows=out_rows, summary=summary)

    def _absent_rows(
        self,
        *,
        start: date,
        end: date,
        worker_id: Optional[int],
        existing: list[AttendanceReportRow],
        today: date | None,
    ) -> list[AttendanceReportRow]:
        # Future days are not absences yet.
        last = min(end, today or now_local().date())
        if last < start:
            return []

        workers = [
            u
            for u in self._users.list_active_by_role(Role.WORKER)
            if worker_id is None or u.user_id == worker_id
        ]
        seen = {(r.worker_id, r.work_date) for r in existing}
        excused = {
            (leave.worker_id, d)
            for leave in self._leaves.approved_leaves_between(start, last)
            for d in iter_dates(leave.start_date, leave.end_date)
        }
        excused |= {
            (d.worker_id, d.holiday_date)
            for d in self._holidays.approved_days_off_between(start, last)
            if d.holiday_type == HolidayType.FULL
        }

        absent: list[AttendanceReportRow] = []
        for day in iter_dates(start, last):
            holiday = self._holidays.holiday_on(day)
            if holiday and holiday.holiday_type == HolidayType.FULL:
                continue
            for w in workers:
                if (w.user_id, day) in seen or (w.user_id, day) in excused:
                    continue
                absent.append(
                    AttendanceReportRow(
                        worker_id=w.user_id,
                        name=w.name,
                        username=w.username,
                        work_date=day,
                        check_in_time=None,
                        check_out_time=None,
                        status=AttendanceStatus.ABSENT,
                    )
                )
        return absent

    @staticmethod
    def to_csv(report: ReportData) -> str:
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        for row in report.rows:
            writer.writerow(row)
        return buf.getvalue()
