from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Optional
from urllib.parse import quote

from ..common.datetime_utils import format_minutes, now_local, round_minutes
from ..core.constants import APPROVAL_WAIT_MAX_SECONDS, DEFAULT_HISTORY_LIMIT, WHATSAPP_SHARE_URL
from ..core.enums import AttendanceStatus, DayState, NotificationType, Role, WorkMode
from ..core.exceptions import (
    AuthorizationError,
    DeviceNotAuthorized,
    NoActiveSession,
    NotFoundError,
    ValidationError,
)
from ..notifications.service import NotificationService
from ..settings.service import SettingsService
from ..users.repository import UserRepository
from .approvals import ApprovalChannel
from .factory import AttendanceStrategyFactory
from .model import (
    AttendanceRecord,
    DaySummary,
    DeviceContext,
    EarlyExitRequest,
    StartDayResult,
    TimeLogSegment,
)
from .policy import AttendancePolicy
from .repository import AttendanceRepository, DaySessionWriter

logger = logging.getLogger(__name__)

_MODE_STATUS = {
    WorkMode.FIELD: AttendanceStatus.FIELD,
    WorkMode.EVENT: AttendanceStatus.EVENT,
}


class DaySessionService:
    """Worker day lifecycle: start, mode switches, early exit, end.

    Each transition runs in one repository transaction. Notifications are sent
    after commit and never undo a transition.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        settings: SettingsService,
        notifications: NotificationService,
        *,
        approvals: ApprovalChannel | None = None,
        strategy_factory: AttendanceStrategyFactory | None = None,
    ):
        self._attendance = attendance
        self._users = users
        self._settings = settings
        self._notifications = notifications
        self._approvals = approvals or ApprovalChannel()
        self._factory = strategy_factory or AttendanceStrategyFactory()

    # ------------------------------------------------------------------ commands

    def start_day(
        self,
        worker_id: int,
        device: DeviceContext,
        *,
        kiosk_fingerprint: Optional[str],
        now: datetime | None = None,
    ) -> StartDayResult:
        now = now or now_local()
        today = now.date()

        if kiosk_fingerprint and device.fingerprint != kiosk_fingerprint:
            logger.warning("Rejected start_day for worker %s from unregistered device", worker_id)
            raise DeviceNotAuthorized("Please check in from the office kiosk")

        self._require_worker(worker_id)
        policy = self._settings.attendance_policy()

        stale: Optional[AttendanceRecord] = None
        with self._attendance.transaction() as tx:
            leftover = tx.lock_open_for_worker(worker_id)
            if leftover is not None and leftover.work_date < today:
                stale = self._close_stale_day(tx, leftover, now, policy)

            existing = tx.lock_for_worker_and_date(worker_id, today)
            if existing and existing.check_in_time is not None:
                record, created = existing, False
            else:
                strategy = self._factory.for_checkin(now=now, policy=policy)
                decision = strategy.decide_checkin(now=now, policy=policy)
                record = tx.upsert_checkin(
                    worker_id=worker_id,
                    work_date=today,
                    check_in_time=now,
                    status=decision.status,
                    mode=WorkMode.OFFICE,
                    device_id=device.fingerprint,
                )
                self._close_open_segment(tx, worker_id, now)
                tx.open_segment(worker_id=worker_id, work_date=today, mode=WorkMode.OFFICE, start_time=now)
                created = True

        if stale is not None:
            self._approvals.forget(stale.attendance_id)
        if not created:
            return StartDayResult(record=record, created=False)

        logger.info(
            "Worker %s started day at %s (%s, %s)",
            worker_id,
            now.strftime("%H:%M"),
            record.status.value,
            device.device_class.value,
        )
        name = self._worker_name(worker_id)
        label = "late" if record.status == AttendanceStatus.LATE else "on time"
        self._notify_overseers(
            "Worker checked in",
            f"{name} started the day at {now.strftime('%H:%M')} ({label})",
            data={"worker_id": worker_id, "attendance_id": record.attendance_id, "event": "start_day"},
        )
        return StartDayResult(record=record, created=True)

    def switch_mode(
        self,
        worker_id: int,
        new_mode: WorkMode,
        *,
        notes: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        now = now or now_local()
        new_mode = WorkMode(new_mode)
        self._require_worker(worker_id)

        with self._attendance.transaction() as tx:
            record = self._lock_open_record(tx, worker_id)
            if record.mode == new_mode:
                raise ValidationError(f"Already in {new_mode.value} mode")

            self._close_open_segment(tx, worker_id, now)
            tx.open_segment(
                worker_id=worker_id,
                work_date=record.work_date,
                mode=new_mode,
                start_time=now,
                notes=(notes or "").strip() or None,
            )
            status = self._status_for_mode(new_mode, record)
            tx.update_mode(attendance_id=record.attendance_id, mode=new_mode, status=status)
            updated = tx.lock_by_id(record.attendance_id) or record

        logger.info("Worker %s switched %s -> %s", worker_id, record.mode.value, new_mode.value)
        if new_mode != WorkMode.OFFICE:
            name = self._worker_name(worker_id)
            body = f"{name} switched to {new_mode.value} work"
            if notes:
                body = f"{body}: {notes.strip()}"
            self._notify_overseers(
                f"{new_mode.value.title()} mode",
                body,
                data={"worker_id": worker_id, "mode": new_mode.value, "event": "switch_mode"},
            )
        return updated

    def request_early_exit(self, worker_id: int, reason: str, *, now: datetime | None = None) -> EarlyExitRequest:
        now = now or now_local()
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Please give a reason for leaving early")
        self._require_worker(worker_id)

        with self._attendance.transaction() as tx:
            record = self._lock_open_record(tx, worker_id)
            tx.mark_early_exit_requested(attendance_id=record.attendance_id, reason=reason)
            updated = tx.lock_by_id(record.attendance_id) or record

        logger.info("Worker %s requested early exit at %s", worker_id, now.strftime("%H:%M"))
        name = self._worker_name(worker_id)
        self._notify_overseers(
            "Early exit request",
            f"{name} asks to leave early: {reason}",
            data={"worker_id": worker_id, "attendance_id": updated.attendance_id, "event": "early_exit"},
        )
        return EarlyExitRequest(record=updated, share_url=self._share_url(name, reason))

    def approve_early_exit(
        self,
        attendance_id: int,
        *,
        current_role: Role,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        if Role(current_role) != Role.SWAMIJI:
            raise AuthorizationError("Only Swamiji can approve early exits")
        now = now or now_local()

        with self._attendance.transaction() as tx:
            record = tx.lock_by_id(attendance_id)
            if not record:
                raise NotFoundError("Attendance record not found")
            if not record.early_exit_requested:
                raise ValidationError("No early exit was requested for this day")
            first_approval = not record.early_exit_approved
            if first_approval:
                tx.mark_early_exit_approved(attendance_id=record.attendance_id, approved_at=now)
            updated = tx.lock_by_id(record.attendance_id) or record

        self._approvals.publish(updated.attendance_id, updated.early_exit_approved_at or now)
        if first_approval:
            logger.info("Early exit approved for attendance %s", attendance_id)
            self._notify_user(
                updated.worker_id,
                "Early exit approved",
                "Swamiji approved your early exit. You can end your day.",
                data={"attendance_id": updated.attendance_id, "event": "early_exit_approved"},
            )
        return updated

    def end_day(self, worker_id: int, *, now: datetime | None = None) -> DaySummary:
        now = now or now_local()
        self._require_worker(worker_id)
        policy = self._settings.attendance_policy()

        with self._attendance.transaction() as tx:
            record = self._lock_open_record(tx, worker_id)
            self._close_open_segment(tx, worker_id, now)

            elapsed = now - record.check_in_time
            total_minutes = round_minutes(elapsed)
            strategy = self._factory.for_checkout(
                elapsed=elapsed,
                early_exit_approved=record.early_exit_approved,
                policy=policy,
            )
            decision = strategy.decide_checkout(total_minutes=total_minutes, policy=policy)
            tx.finalize(attendance_id=record.attendance_id, check_out_time=now, status=decision.status)
            final = tx.lock_by_id(record.attendance_id) or record

        self._approvals.forget(final.attendance_id)
        segments = list(self._attendance.list_segments(worker_id, final.work_date))
        summary = DaySummary(
            record=final,
            segments=segments,
            total_minutes=total_minutes,
            minutes_by_mode=self._minutes_by_mode(segments),
        )

        logger.info("Worker %s ended day: %s min, %s", worker_id, total_minutes, decision.status.value)
        name = self._worker_name(worker_id)
        breakdown = ", ".join(f"{m.value} {format_minutes(v)}" for m, v in summary.minutes_by_mode.items())
        self._notify_overseers(
            "Worker checked out",
            f"{name} ended the day after {format_minutes(total_minutes)} ({decision.status.value})"
            + (f". {breakdown}" if breakdown else ""),
            data={"worker_id": worker_id, "attendance_id": final.attendance_id, "event": "end_day"},
        )
        return summary

    # ------------------------------------------------------------------ queries

    def get_today(self, worker_id: int, *, today: date | None = None) -> Optional[AttendanceRecord]:
        today = today or now_local().date()
        return self._attendance.get_for_worker_and_date(worker_id, today)

    def get_day_state(self, worker_id: int, *, today: date | None = None) -> DayState:
        record = self.get_today(worker_id, today=today)
        return record.day_state if record else DayState.NOT_STARTED

    def get_history(self, worker_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[AttendanceRecord]:
        return list(self._attendance.get_recent_for_worker(worker_id, max(1, int(limit))))

    def get_segments(self, worker_id: int, work_date: date) -> list[TimeLogSegment]:
        return list(self._attendance.list_segments(worker_id, work_date))

    def get_status_on(self, worker_id: int, work_date: date) -> AttendanceStatus:
        record = self._attendance.get_for_worker_and_date(worker_id, work_date)
        if not record or record.check_in_time is None:
            return AttendanceStatus.ABSENT
        return record.status

    def list_pending_early_exits(self, *, work_date: date | None = None) -> list[AttendanceRecord]:
        work_date = work_date or now_local().date()
        return list(self._attendance.list_pending_early_exits(work_date))

    def wait_for_early_exit_approval(
        self,
        attendance_id: int,
        *,
        timeout: float = APPROVAL_WAIT_MAX_SECONDS,
        worker_id: Optional[int] = None,
    ) -> AttendanceRecord:
        """Block until the request is approved or ``timeout`` elapses, then return the record.

        When ``worker_id`` is given the record must belong to that worker.
        """

        timeout = min(max(0.0, float(timeout)), float(APPROVAL_WAIT_MAX_SECONDS))
        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        if worker_id is not None and record.worker_id != worker_id:
            raise AuthorizationError("You do not have permission")
        if record.early_exit_approved or not record.early_exit_requested:
            return record

        self._approvals.wait(attendance_id, timeout)
        return self._attendance.get_by_id(attendance_id) or record

    # ------------------------------------------------------------------ helpers

    def _require_worker(self, worker_id: int) -> None:
        user = self._users.get_by_id(worker_id)
        if not user or not user.is_active:
            raise NotFoundError("Worker not found")

    def _lock_open_record(self, tx: DaySessionWriter, worker_id: int) -> AttendanceRecord:
        # Keyed on the open record, not today's date, so a day may run past midnight.
        record = tx.lock_open_for_worker(worker_id)
        if record is None:
            raise NoActiveSession("You have not started your day")
        return record

    def _close_stale_day(
        self,
        tx: DaySessionWriter,
        record: AttendanceRecord,
        now: datetime,
        policy: AttendancePolicy,
    ) -> AttendanceRecord:
        """End a day left open from an earlier date at the midnight that followed it."""

        cutoff = min(now, datetime.combine(record.work_date + timedelta(days=1), time.min))
        self._close_open_segment(tx, record.worker_id, cutoff)
        elapsed = cutoff - record.check_in_time
        total_minutes = round_minutes(elapsed)
        strategy = self._factory.for_checkout(
            elapsed=elapsed,
            early_exit_approved=record.early_exit_approved,
            policy=policy,
        )
        decision = strategy.decide_checkout(total_minutes=total_minutes, policy=policy)
        tx.finalize(attendance_id=record.attendance_id, check_out_time=cutoff, status=decision.status)
        logger.warning(
            "Closed day %s of worker %s left open since %s at %s (%s)",
            record.attendance_id,
            record.worker_id,
            record.work_date.isoformat(),
            cutoff.isoformat(),
            decision.status.value,
        )
        return tx.lock_by_id(record.attendance_id) or record

    @staticmethod
    def _close_open_segment(tx: DaySessionWriter, worker_id: int, now: datetime) -> None:
        segment = tx.get_open_segment(worker_id)
        if segment is None:
            return
        duration = max(0, round_minutes(now - segment.start_time))
        tx.close_segment(segment_id=segment.segment_id, end_time=now, duration_minutes=duration)

    def _status_for_mode(self, mode: WorkMode, record: AttendanceRecord) -> AttendanceStatus:
        if mode in _MODE_STATUS:
            return _MODE_STATUS[mode]
        # Back in the office: the check-in decision stands.
        policy = self._settings.attendance_policy()
        strategy = self._factory.for_checkin(now=record.check_in_time, policy=policy)
        return strategy.decide_checkin(now=record.check_in_time, policy=policy).status

    @staticmethod
    def _minutes_by_mode(segments: list[TimeLogSegment]) -> dict[WorkMode, int]:
        totals: dict[WorkMode, int] = defaultdict(int)
        for seg in segments:
            totals[seg.mode] += int(seg.duration_minutes or 0)
        return dict(totals)

    def _share_url(self, name: str, reason: str) -> Optional[str]:
        phone = self._settings.get_emergency_contact()
        if not phone:
            return None
        digits = "".join(ch for ch in phone if ch.isdigit())
        text = quote(f"Early exit request from {name}: {reason}")
        return WHATSAPP_SHARE_URL.format(phone=digits, text=text)

    def _worker_name(self, worker_id: int) -> str:
        user = self._users.get_by_id(worker_id)
        return user.name if user else f"Worker #{worker_id}"

    def _notify_overseers(self, title: str, body: str, *, data: dict) -> None:
        try:
            self._notifications.notify_overseers(title, body, type=NotificationType.SYSTEM, data=data)
        except Exception:
            logger.warning("Overseer notification failed: %s", title, exc_info=True)

    def _notify_user(self, user_id: int, title: str, body: str, *, data: dict) -> None:
        try:
            self._notifications.notify_user(user_id, title, body, type=NotificationType.SYSTEM, data=data)
        except Exception:
            logger.warning("Notification to user %s failed: %s", user_id, title, exc_info=True)
