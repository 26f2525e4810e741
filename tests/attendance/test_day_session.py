from __future__ import annotations

import threading
from datetime import datetime, timedelta

import pytest

from src.aakb_workforce.aakb_workforce.attendance.model import DeviceContext
from src.aakb_workforce.aakb_workforce.core.constants import SETTING_EMERGENCY_CONTACT, SETTING_KIOSK_DEVICE_ID
from src.aakb_workforce.aakb_workforce.core.enums import AttendanceStatus, DayState, DeviceClass, Role, WorkMode
from src.aakb_workforce.aakb_workforce.core.exceptions import (
    AuthorizationError,
    DeviceNotAuthorized,
    NoActiveSession,
    NotFoundError,
    ValidationError,
)

WORKER = 4
KIOSK = DeviceContext(fingerprint="kiosk-abc", device_class=DeviceClass.KIOSK)


def _start(day_sessions, now, *, kiosk=None, device=KIOSK):
    return day_sessions.start_day(WORKER, device, kiosk_fingerprint=kiosk, now=now)


def test_start_day_on_time_opens_office_segment_and_notifies(day_sessions, attendance_repo, notifier, at):
    result = _start(day_sessions, at(9, 0))

    assert result.created is True
    assert result.record.status == AttendanceStatus.PRESENT
    assert result.record.mode == WorkMode.OFFICE
    assert result.record.check_in_time == at(9, 0)
    assert result.record.device_id == "kiosk-abc"

    open_segments = attendance_repo.open_segments(WORKER)
    assert len(open_segments) == 1
    assert open_segments[0].mode == WorkMode.OFFICE
    assert open_segments[0].start_time == at(9, 0)

    assert len(notifier.overseer_messages) == 1
    assert "Ravi" in notifier.overseer_messages[0][1]


def test_start_day_after_cutoff_is_late(day_sessions, at):
    result = _start(day_sessions, at(9, 45))
    assert result.record.status == AttendanceStatus.LATE


def test_start_day_exactly_at_cutoff_is_present(day_sessions, at):
    assert _start(day_sessions, at(9, 30)).record.status == AttendanceStatus.PRESENT


def test_late_cutoff_setting_is_honoured(day_sessions, settings_repo, at):
    settings_repo.set("late_time", "10:00")
    assert _start(day_sessions, at(9, 45)).record.status == AttendanceStatus.PRESENT


def test_start_day_twice_keeps_single_record_and_segment(day_sessions, attendance_repo, notifier, at):
    first = _start(day_sessions, at(9, 0))
    second = _start(day_sessions, at(9, 40))

    assert second.created is False
    assert second.record.attendance_id == first.record.attendance_id
    assert second.record.check_in_time == at(9, 0)
    assert second.record.status == AttendanceStatus.PRESENT
    assert len(attendance_repo.state.records) == 1
    assert len(attendance_repo.open_segments(WORKER)) == 1
    assert len(notifier.overseer_messages) == 1


def test_start_day_after_end_does_not_reopen(day_sessions, attendance_repo, at):
    _start(day_sessions, at(9, 0))
    day_sessions.end_day(WORKER, now=at(17, 30))

    again = _start(day_sessions, at(18, 0))

    assert again.created is False
    assert again.record.check_out_time == at(17, 30)
    assert attendance_repo.open_segments(WORKER) == []


def test_start_day_rejects_unregistered_device(day_sessions, attendance_repo, at):
    laptop = DeviceContext(fingerprint="laptop-1", device_class=DeviceClass.LAPTOP)

    with pytest.raises(DeviceNotAuthorized):
        _start(day_sessions, at(9, 0), kiosk="kiosk-abc", device=laptop)

    assert attendance_repo.state.records == {}
    assert attendance_repo.state.segments == {}


def test_start_day_accepts_registered_kiosk(day_sessions, settings_service, settings_repo, at):
    settings_repo.set(SETTING_KIOSK_DEVICE_ID, "kiosk-abc")

    result = _start(day_sessions, at(9, 0), kiosk=settings_service.get_kiosk_fingerprint())

    assert result.created is True


def test_start_day_without_registered_kiosk_accepts_any_device(day_sessions, at):
    phone = DeviceContext(fingerprint="phone-9", device_class=DeviceClass.MOBILE)
    assert _start(day_sessions, at(9, 0), kiosk=None, device=phone).created is True


def test_start_day_unknown_worker(day_sessions, at):
    with pytest.raises(NotFoundError):
        day_sessions.start_day(999, KIOSK, kiosk_fingerprint=None, now=at(9, 0))


def test_switch_mode_requires_active_session(day_sessions, at):
    with pytest.raises(NoActiveSession):
        day_sessions.switch_mode(WORKER, WorkMode.FIELD, now=at(10, 0))


def test_switch_mode_after_end_day_is_rejected(day_sessions, at):
    _start(day_sessions, at(9, 0))
    day_sessions.end_day(WORKER, now=at(18, 0))

    with pytest.raises(NoActiveSession):
        day_sessions.switch_mode(WORKER, WorkMode.FIELD, now=at(18, 5))


def test_switch_to_field_and_back_restores_checkin_status(day_sessions, attendance_repo, notifier, at):
    _start(day_sessions, at(9, 45))

    field = day_sessions.switch_mode(WORKER, WorkMode.FIELD, notes="site visit", now=at(11, 0))
    assert field.mode == WorkMode.FIELD
    assert field.status == AttendanceStatus.FIELD
    assert field.day_state == DayState.FIELD_MODE
    assert len(attendance_repo.open_segments(WORKER)) == 1
    assert len(notifier.overseer_messages) == 2

    office = day_sessions.switch_mode(WORKER, WorkMode.OFFICE, now=at(13, 0))
    assert office.status == AttendanceStatus.LATE
    assert office.day_state == DayState.WORKING
    # returning to office is not announced
    assert len(notifier.overseer_messages) == 2

    segments = attendance_repo.list_segments(WORKER, at(0).date())
    assert [s.mode for s in segments] == [WorkMode.OFFICE, WorkMode.FIELD, WorkMode.OFFICE]
    assert [s.duration_minutes for s in segments[:2]] == [75, 120]
    assert segments[1].notes == "site visit"


def test_switch_to_current_mode_is_rejected(day_sessions, at):
    _start(day_sessions, at(9, 0))
    with pytest.raises(ValidationError):
        day_sessions.switch_mode(WORKER, WorkMode.OFFICE, now=at(10, 0))


def test_switch_mode_is_atomic_when_store_fails(day_sessions, attendance_repo, at):
    _start(day_sessions, at(9, 0))
    attendance_repo.fail_on = "open_segment"

    with pytest.raises(RuntimeError):
        day_sessions.switch_mode(WORKER, WorkMode.EVENT, now=at(11, 0))

    open_segments = attendance_repo.open_segments(WORKER)
    assert len(open_segments) == 1
    assert open_segments[0].mode == WorkMode.OFFICE
    assert day_sessions.get_today(WORKER, today=at(0).date()).mode == WorkMode.OFFICE


def test_request_early_exit_validates_reason_and_session(day_sessions, at):
    with pytest.raises(NoActiveSession):
        day_sessions.request_early_exit(WORKER, "doctor", now=at(10, 0))

    _start(day_sessions, at(9, 0))
    with pytest.raises(ValidationError):
        day_sessions.request_early_exit(WORKER, "   ", now=at(10, 0))


def test_request_early_exit_sets_flags_and_share_link(day_sessions, settings_repo, notifier, at):
    settings_repo.set(SETTING_EMERGENCY_CONTACT, "+91 98765 43210")
    _start(day_sessions, at(9, 0))

    result = day_sessions.request_early_exit(WORKER, "family emergency", now=at(13, 0))

    assert result.record.early_exit_requested is True
    assert result.record.early_exit_reason == "family emergency"
    assert result.record.early_exit_approved is False
    assert result.share_url.startswith("https://wa.me/919876543210?text=")
    assert notifier.overseer_messages[-1][0] == "Early exit request"


def test_request_early_exit_without_contact_has_no_link(day_sessions, at):
    _start(day_sessions, at(9, 0))
    assert day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0)).share_url is None


def test_only_swamiji_can_approve(day_sessions, at):
    record = _start(day_sessions, at(9, 0)).record
    day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0))

    for role in (Role.ADMIN, Role.MANAGER, Role.WORKER):
        with pytest.raises(AuthorizationError):
            day_sessions.approve_early_exit(record.attendance_id, current_role=role, now=at(12, 5))


def test_approve_without_request_is_rejected(day_sessions, at):
    record = _start(day_sessions, at(9, 0)).record
    with pytest.raises(ValidationError):
        day_sessions.approve_early_exit(record.attendance_id, current_role=Role.SWAMIJI, now=at(12, 0))


def test_approve_is_idempotent_and_keeps_first_timestamp(day_sessions, notifier, at):
    record = _start(day_sessions, at(9, 0)).record
    day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0))

    first = day_sessions.approve_early_exit(record.attendance_id, current_role=Role.SWAMIJI, now=at(12, 5))
    second = day_sessions.approve_early_exit(record.attendance_id, current_role=Role.SWAMIJI, now=at(12, 30))

    assert first.early_exit_approved is True
    assert second.early_exit_approved_at == at(12, 5)
    assert len(notifier.user_messages) == 1
    assert notifier.user_messages[0][0] == WORKER


def test_end_day_requires_active_session(day_sessions, at):
    with pytest.raises(NoActiveSession):
        day_sessions.end_day(WORKER, now=at(17, 0))


def test_end_day_undertime_without_approval(day_sessions, at):
    _start(day_sessions, at(9, 0))
    summary = day_sessions.end_day(WORKER, now=at(16, 59))

    assert summary.total_minutes == 479
    assert summary.record.status == AttendanceStatus.UNDERTIME
    assert summary.record.day_state == DayState.ENDED


def test_end_day_early_approved(day_sessions, at):
    record = _start(day_sessions, at(9, 0)).record
    day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0))
    day_sessions.approve_early_exit(record.attendance_id, current_role=Role.SWAMIJI, now=at(12, 10))

    summary = day_sessions.end_day(WORKER, now=at(16, 59))

    assert summary.record.status == AttendanceStatus.EARLY_APPROVED


def test_end_day_overtime(day_sessions, at):
    _start(day_sessions, at(8, 0))
    summary = day_sessions.end_day(WORKER, now=at(18, 30))

    assert summary.total_minutes == 630
    assert summary.record.status == AttendanceStatus.OVERTIME


def test_end_day_completed(day_sessions, at):
    _start(day_sessions, at(9, 0))
    summary = day_sessions.end_day(WORKER, now=at(18, 0))

    assert summary.record.status == AttendanceStatus.COMPLETED
    assert (summary.hours_part, summary.minutes_part) == (9, 0)


def test_approved_early_exit_does_not_override_full_day(day_sessions, at):
    record = _start(day_sessions, at(9, 0)).record
    day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0))
    day_sessions.approve_early_exit(record.attendance_id, current_role=Role.SWAMIJI, now=at(12, 10))

    assert day_sessions.end_day(WORKER, now=at(18, 0)).record.status == AttendanceStatus.COMPLETED


def test_segments_sum_to_total_and_all_closed(day_sessions, attendance_repo, at):
    _start(day_sessions, at(9, 0, 10))
    day_sessions.switch_mode(WORKER, WorkMode.FIELD, now=at(10, 20, 40))
    day_sessions.switch_mode(WORKER, WorkMode.EVENT, now=at(12, 5, 29))
    day_sessions.switch_mode(WORKER, WorkMode.OFFICE, now=at(14, 44, 31))
    summary = day_sessions.end_day(WORKER, now=at(17, 31, 50))

    assert attendance_repo.open_segments(WORKER) == []
    assert all(s.end_time is not None for s in summary.segments)
    segment_total = sum(s.duration_minutes for s in summary.segments)
    assert abs(segment_total - summary.total_minutes) <= 1
    assert set(summary.minutes_by_mode) == {WorkMode.OFFICE, WorkMode.FIELD, WorkMode.EVENT}


def test_notification_failure_does_not_roll_back(day_sessions, attendance_repo, notifier, at):
    notifier.fail = True

    result = _start(day_sessions, at(9, 0))
    summary = day_sessions.end_day(WORKER, now=at(18, 0))

    assert result.created is True
    assert summary.record.status == AttendanceStatus.COMPLETED
    assert len(attendance_repo.state.records) == 1


def test_day_state_and_absent_status(day_sessions, at):
    today = at(0).date()
    assert day_sessions.get_day_state(WORKER, today=today) == DayState.NOT_STARTED
    assert day_sessions.get_status_on(WORKER, today) == AttendanceStatus.ABSENT

    _start(day_sessions, at(9, 0))
    assert day_sessions.get_day_state(WORKER, today=today) == DayState.WORKING
    day_sessions.switch_mode(WORKER, WorkMode.EVENT, now=at(10, 0))
    assert day_sessions.get_day_state(WORKER, today=today) == DayState.EVENT_MODE
    day_sessions.end_day(WORKER, now=at(18, 0))
    assert day_sessions.get_day_state(WORKER, today=today) == DayState.ENDED
    assert day_sessions.get_status_on(WORKER, today) == AttendanceStatus.COMPLETED


def test_workers_are_independent(day_sessions, attendance_repo, at):
    _start(day_sessions, at(9, 0))
    day_sessions.start_day(5, KIOSK, kiosk_fingerprint=None, now=at(9, 50))

    assert len(attendance_repo.state.records) == 2
    assert day_sessions.get_status_on(5, at(0).date()) == AttendanceStatus.LATE
    with pytest.raises(NoActiveSession):
        day_sessions.end_day(2, now=at(17, 0))


def test_pending_early_exits_listed_until_approved(day_sessions, at):
    record = _start(day_sessions, at(9, 0)).record
    day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0))

    pending = day_sessions.list_pending_early_exits(work_date=at(0).date())
    assert [r.attendance_id for r in pending] == [record.attendance_id]

    day_sessions.approve_early_exit(record.attendance_id, current_role=Role.SWAMIJI, now=at(12, 10))
    assert day_sessions.list_pending_early_exits(work_date=at(0).date()) == []


def test_wait_for_approval_wakes_on_approval(day_sessions, at):
    record = _start(day_sessions, at(9, 0)).record
    day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0))

    approver = threading.Timer(
        0.05,
        lambda: day_sessions.approve_early_exit(record.attendance_id, current_role=Role.SWAMIJI, now=at(12, 1)),
    )
    started = datetime.now()
    approver.start()
    try:
        waited = day_sessions.wait_for_early_exit_approval(record.attendance_id, timeout=5)
    finally:
        approver.join()

    assert waited.early_exit_approved is True
    assert datetime.now() - started < timedelta(seconds=4)


def test_wait_for_approval_times_out_with_current_record(day_sessions, at):
    record = _start(day_sessions, at(9, 0)).record
    day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0))

    waited = day_sessions.wait_for_early_exit_approval(record.attendance_id, timeout=0.01)

    assert waited.early_exit_requested is True
    assert waited.early_exit_approved is False


def test_wait_for_approval_rejects_other_workers(day_sessions, at):
    record = _start(day_sessions, at(9, 0)).record
    day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0))

    with pytest.raises(AuthorizationError):
        day_sessions.wait_for_early_exit_approval(record.attendance_id, timeout=5, worker_id=5)


def test_end_day_seconds_short_of_eight_hours_is_undertime(day_sessions, at):
    _start(day_sessions, at(9, 0, 0))

    summary = day_sessions.end_day(WORKER, now=at(16, 59, 40))

    assert summary.total_minutes == 480
    assert summary.record.status == AttendanceStatus.UNDERTIME


def test_end_day_seconds_short_with_approval_is_early_approved(day_sessions, at):
    started = _start(day_sessions, at(9, 0, 0))
    day_sessions.request_early_exit(WORKER, "unwell", now=at(12, 0))
    day_sessions.approve_early_exit(started.record.attendance_id, current_role=Role.SWAMIJI, now=at(12, 5))

    summary = day_sessions.end_day(WORKER, now=at(16, 59, 40))

    assert summary.record.status == AttendanceStatus.EARLY_APPROVED


def test_end_day_seconds_over_ten_hours_is_overtime(day_sessions, at):
    _start(day_sessions, at(8, 0, 0))

    summary = day_sessions.end_day(WORKER, now=at(18, 0, 20))

    assert summary.total_minutes == 600
    assert summary.record.status == AttendanceStatus.OVERTIME


@pytest.mark.parametrize(
    "operation",
    [
        lambda s, now: s.switch_mode(WORKER, WorkMode.FIELD, now=now),
        lambda s, now: s.request_early_exit(WORKER, "unwell", now=now),
        lambda s, now: s.end_day(WORKER, now=now),
    ],
    ids=["switch_mode", "request_early_exit", "end_day"],
)
def test_deactivated_worker_cannot_continue_day(day_sessions, users, attendance_repo, at, operation):
    _start(day_sessions, at(9, 0))
    users.set_active(WORKER, is_active=False)

    with pytest.raises(NotFoundError):
        operation(day_sessions, at(12, 0))

    record = day_sessions.get_today(WORKER, today=at(9, 0).date())
    assert record.is_open
    assert record.mode == WorkMode.OFFICE
    assert record.early_exit_requested is False
    assert len(attendance_repo.open_segments(WORKER)) == 1


def test_day_started_before_midnight_ends_after_midnight(day_sessions, attendance_repo, at):
    started = _start(day_sessions, at(20, 0))
    next_day = at(0, 0) + timedelta(days=1)

    day_sessions.switch_mode(WORKER, WorkMode.EVENT, now=at(23, 0))
    summary = day_sessions.end_day(WORKER, now=next_day + timedelta(minutes=30))

    assert summary.record.attendance_id == started.record.attendance_id
    assert summary.record.check_out_time == next_day + timedelta(minutes=30)
    assert summary.record.status == AttendanceStatus.UNDERTIME
    assert summary.total_minutes == 270
    assert summary.minutes_by_mode == {WorkMode.OFFICE: 180, WorkMode.EVENT: 90}
    assert attendance_repo.open_segments(WORKER) == []


def test_next_start_closes_day_left_open_at_midnight(day_sessions, attendance_repo, at):
    stale = _start(day_sessions, at(20, 0)).record
    tomorrow_nine = at(9, 0) + timedelta(days=1)

    result = _start(day_sessions, tomorrow_nine)

    closed = attendance_repo.get_by_id(stale.attendance_id)
    assert closed.check_out_time == at(0, 0) + timedelta(days=1)
    assert closed.status == AttendanceStatus.UNDERTIME
    assert [s.duration_minutes for s in attendance_repo.list_segments(WORKER, stale.work_date)] == [240]

    assert result.created is True
    assert result.record.attendance_id != stale.attendance_id
    assert result.record.work_date == tomorrow_nine.date()
    open_segments = attendance_repo.open_segments(WORKER)
    assert [(s.work_date, s.start_time) for s in open_segments] == [(tomorrow_nine.date(), tomorrow_nine)]


def test_closing_a_left_open_day_drops_its_approval(day_sessions, approvals, at):
    stale = _start(day_sessions, at(20, 0)).record
    day_sessions.request_early_exit(WORKER, "unwell", now=at(21, 0))
    day_sessions.approve_early_exit(stale.attendance_id, current_role=Role.SWAMIJI, now=at(21, 5))

    _start(day_sessions, at(9, 0) + timedelta(days=1))

    assert approvals.wait(stale.attendance_id, timeout=0) is None
    assert day_sessions.get_status_on(WORKER, stale.work_date) == AttendanceStatus.EARLY_APPROVED
