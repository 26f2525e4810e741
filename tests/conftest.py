from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, time
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.aakb_workforce.aakb_workforce.attendance.approvals import ApprovalChannel
from src.aakb_workforce.aakb_workforce.attendance.model import (
    AttendanceRecord,
    AttendanceReportRow,
    TimeLogSegment,
)
from src.aakb_workforce.aakb_workforce.attendance.service import DaySessionService
from src.aakb_workforce.aakb_workforce.core.enums import RequestStatus, Role, TaskStatus
from src.aakb_workforce.aakb_workforce.holidays.model import Holiday, WorkerHoliday
from src.aakb_workforce.aakb_workforce.leaves.model import LeaveRequest
from src.aakb_workforce.aakb_workforce.notifications.model import (
    Notification,
    NotificationPreference,
    PushToken,
)
from src.aakb_workforce.aakb_workforce.settings.service import SettingsService
from src.aakb_workforce.aakb_workforce.tasks.model import Task
from src.aakb_workforce.aakb_workforce.users.model import User

WORKER_ID = 4
OTHER_WORKER_ID = 5
SWAMIJI_ID = 3


# ---------------------------------------------------------------- users / settings


class InMemoryUsers:
    def __init__(self, users: list[User]):
        self._by_id = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._by_id.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self._by_id.values() if u.username == username), None)

    def create_user(self, *, name, username, password_hash, role, phone) -> int:
        user_id = max(self._by_id, default=0) + 1
        self._by_id[user_id] = User(user_id, name, username, password_hash, role, phone, True)
        return user_id

    def delete_by_id(self, user_id: int) -> bool:
        return self._by_id.pop(user_id, None) is not None

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        if user_id not in self._by_id:
            return False
        self._by_id[user_id] = replace(self._by_id[user_id], is_active=is_active)
        return True

    def list_all(self):
        return list(self._by_id.values())

    def list_active_by_role(self, role: Role):
        return [u for u in self._by_id.values() if u.role == role and u.is_active]


class InMemorySettings:
    def __init__(self, values: Optional[dict] = None):
        self.values = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> bool:
        return self.values.pop(key, None) is not None

    def all(self) -> dict:
        return dict(self.values)


# ---------------------------------------------------------------- attendance


class _State:
    def __init__(self):
        self.records: dict[int, AttendanceRecord] = {}
        self.segments: dict[int, TimeLogSegment] = {}
        self.next_record_id = 1
        self.next_segment_id = 1


class _InMemoryWriter:
    def __init__(self, state: _State):
        self._s = state

    def lock_for_worker_and_date(self, worker_id: int, work_date: date):
        return next(
            (r for r in self._s.records.values() if r.worker_id == worker_id and r.work_date == work_date),
            None,
        )

    def lock_by_id(self, attendance_id: int):
        return self._s.records.get(attendance_id)

    def lock_open_for_worker(self, worker_id: int):
        open_records = [r for r in self._s.records.values() if r.worker_id == worker_id and r.is_open]
        return max(open_records, key=lambda r: r.work_date, default=None)

    def upsert_checkin(self, *, worker_id, work_date, check_in_time, status, mode, device_id):
        existing = self.lock_for_worker_and_date(worker_id, work_date)
        if existing and existing.check_in_time is not None:
            return existing
        if existing:
            rec = replace(existing, check_in_time=check_in_time, status=status, mode=mode, device_id=device_id)
        else:
            rec = AttendanceRecord(
                attendance_id=self._s.next_record_id,
                worker_id=worker_id,
                work_date=work_date,
                check_in_time=check_in_time,
                check_out_time=None,
                status=status,
                mode=mode,
                device_id=device_id,
            )
            self._s.next_record_id += 1
        self._s.records[rec.attendance_id] = rec
        return rec

    def get_open_segment(self, worker_id: int):
        return next(
            (s for s in self._s.segments.values() if s.worker_id == worker_id and s.end_time is None),
            None,
        )

    def close_segment(self, *, segment_id, end_time, duration_minutes):
        seg = self._s.segments[segment_id]
        self._s.segments[segment_id] = replace(seg, end_time=end_time, duration_minutes=duration_minutes)

    def open_segment(self, *, worker_id, work_date, mode, start_time, notes=None) -> int:
        seg_id = self._s.next_segment_id
        self._s.next_segment_id += 1
        self._s.segments[seg_id] = TimeLogSegment(seg_id, worker_id, work_date, mode, start_time, notes=notes)
        return seg_id

    def update_mode(self, *, attendance_id, mode, status):
        self._s.records[attendance_id] = replace(self._s.records[attendance_id], mode=mode, status=status)

    def mark_early_exit_requested(self, *, attendance_id, reason):
        rec = self._s.records[attendance_id]
        self._s.records[attendance_id] = replace(rec, early_exit_requested=True, early_exit_reason=reason)

    def mark_early_exit_approved(self, *, attendance_id, approved_at):
        rec = self._s.records[attendance_id]
        if rec.early_exit_requested:
            self._s.records[attendance_id] = replace(
                rec,
                early_exit_approved=True,
                early_exit_approved_at=rec.early_exit_approved_at or approved_at,
            )

    def finalize(self, *, attendance_id, check_out_time, status):
        rec = self._s.records[attendance_id]
        self._s.records[attendance_id] = replace(rec, check_out_time=check_out_time, status=status)


class InMemoryAttendance:
    """Transactions snapshot the state and restore it when the block raises."""

    def __init__(self, users: Optional[InMemoryUsers] = None):
        self.state = _State()
        self._users = users
        self.fail_on: Optional[str] = None

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy(self.state)
        writer = _InMemoryWriter(self.state)
        if self.fail_on:
            original = getattr(writer, self.fail_on)

            def boom(*args, **kwargs):
                original(*args, **kwargs)
                raise RuntimeError("store failure")

            setattr(writer, self.fail_on, boom)
        try:
            yield writer
        except BaseException:
            self.state = snapshot
            raise

    def get_for_worker_and_date(self, worker_id, work_date):
        return _InMemoryWriter(self.state).lock_for_worker_and_date(worker_id, work_date)

    def get_by_id(self, attendance_id):
        return self.state.records.get(attendance_id)

    def get_recent_for_worker(self, worker_id, limit):
        items = [r for r in self.state.records.values() if r.worker_id == worker_id]
        items.sort(key=lambda r: r.work_date, reverse=True)
        return items[:limit]

    def list_segments(self, worker_id, work_date):
        items = [s for s in self.state.segments.values() if s.worker_id == worker_id and s.work_date == work_date]
        return sorted(items, key=lambda s: s.start_time)

    def open_segments(self, worker_id):
        return [s for s in self.state.segments.values() if s.worker_id == worker_id and s.end_time is None]

    def list_pending_early_exits(self, work_date):
        return [
            r
            for r in self.state.records.values()
            if r.work_date == work_date and r.early_exit_requested and not r.early_exit_approved
        ]

    def get_report_rows(self, *, start_date, end_date, worker_id=None):
        rows = []
        for r in self.state.records.values():
            if not (start_date <= r.work_date <= end_date):
                continue
            if worker_id is not None and r.worker_id != worker_id:
                continue
            user = self._users.get_by_id(r.worker_id) if self._users else None
            rows.append(
                AttendanceReportRow(
                    worker_id=r.worker_id,
                    name=user.name if user else "?",
                    username=user.username if user else "?",
                    work_date=r.work_date,
                    check_in_time=r.check_in_time,
                    check_out_time=r.check_out_time,
                    status=r.status,
                    mode=r.mode,
                    early_exit_reason=r.early_exit_reason,
                )
            )
        return rows


# ---------------------------------------------------------------- notifications


class RecordingNotifications:
    """Stands in for NotificationService where only the calls matter."""

    def __init__(self):
        self.overseer_messages: list[tuple[str, str, dict]] = []
        self.user_messages: list[tuple[int, str, str, dict]] = []
        self.fail = False

    def notify_overseers(self, title, body, *, type=None, data=None):
        if self.fail:
            raise RuntimeError("push provider down")
        self.overseer_messages.append((title, body, data or {}))
        return []

    def notify_user(self, user_id, title, body, *, type=None, data=None):
        if self.fail:
            raise RuntimeError("push provider down")
        self.user_messages.append((user_id, title, body, data or {}))


class InMemoryNotificationRepo:
    def __init__(self):
        self.items: list[Notification] = []

    def create(self, *, user_id, title, body, type, data, created_at) -> int:
        n = Notification(len(self.items) + 1, user_id, title, body, type, data, False, created_at)
        self.items.append(n)
        return n.notification_id

    def list_for_user(self, user_id, *, limit, unread_only=False):
        items = [n for n in self.items if n.user_id == user_id and (not unread_only or not n.is_read)]
        return list(reversed(items))[:limit]

    def mark_read(self, *, user_id, notification_id) -> bool:
        for i, n in enumerate(self.items):
            if n.notification_id == notification_id and n.user_id == user_id:
                self.items[i] = replace(n, is_read=True)
                return True
        return False

    def mark_all_read(self, user_id) -> int:
        count = 0
        for i, n in enumerate(self.items):
            if n.user_id == user_id and not n.is_read:
                self.items[i] = replace(n, is_read=True)
                count += 1
        return count

    def count_unread(self, user_id) -> int:
        return sum(1 for n in self.items if n.user_id == user_id and not n.is_read)


class InMemoryPushTokens:
    def __init__(self):
        self.tokens: dict[int, PushToken] = {}
        self.preferences: dict[int, NotificationPreference] = {}

    def list_active_for_user(self, user_id):
        return [t for t in self.tokens.values() if t.user_id == user_id and t.is_active]

    def get_by_token(self, token):
        return next((t for t in self.tokens.values() if t.token == token), None)

    def create(self, *, user_id, token, platform, device_name, now) -> int:
        token_id = len(self.tokens) + 1
        self.tokens[token_id] = PushToken(token_id, user_id, token, platform, device_name, True, now)
        return token_id

    def reactivate(self, *, token_id, user_id, platform, device_name, now):
        t = self.tokens[token_id]
        self.tokens[token_id] = replace(
            t, user_id=user_id, platform=platform, device_name=device_name, is_active=True, last_used=now
        )

    def deactivate(self, token_id):
        self.tokens[token_id] = replace(self.tokens[token_id], is_active=False)

    def touch(self, token_id, now):
        self.tokens[token_id] = replace(self.tokens[token_id], last_used=now)

    def get_preference(self, user_id):
        return self.preferences.get(user_id)

    def ensure_preference(self, user_id):
        self.preferences.setdefault(user_id, NotificationPreference(user_id=user_id))


# ---------------------------------------------------------------- leaves / holidays / tasks


class InMemoryLeaves:
    def __init__(self):
        self.items: dict[int, LeaveRequest] = {}

    def create(self, *, worker_id, start_date, end_date, leave_type, reason, created_at) -> int:
        request_id = len(self.items) + 1
        self.items[request_id] = LeaveRequest(
            request_id, worker_id, start_date, end_date, leave_type, reason, RequestStatus.PENDING, created_at
        )
        return request_id

    def get(self, request_id):
        return self.items.get(request_id)

    def decide(self, *, request_id, status, decided_by, decided_at, rejection_reason=None) -> bool:
        req = self.items[request_id]
        if req.status != RequestStatus.PENDING:
            return False
        self.items[request_id] = replace(
            req, status=status, decided_by=decided_by, decided_at=decided_at, rejection_reason=rejection_reason
        )
        return True

    def list_for_worker(self, worker_id):
        return [r for r in self.items.values() if r.worker_id == worker_id]

    def list_by_status(self, status):
        return [r for r in self.items.values() if status is None or r.status == status]

    def list_approved_overlapping(self, *, start_date, end_date, worker_id=None):
        return [
            r
            for r in self.items.values()
            if r.status == RequestStatus.APPROVED
            and r.start_date <= end_date
            and r.end_date >= start_date
            and (worker_id is None or r.worker_id == worker_id)
        ]


class InMemoryHolidays:
    def __init__(self):
        self.holidays: dict[int, Holiday] = {}
        self.days_off: dict[int, WorkerHoliday] = {}

    def create_holiday(self, *, holiday_date, name, holiday_type, half_day_end_time, is_recurring) -> int:
        holiday_id = len(self.holidays) + 1
        self.holidays[holiday_id] = Holiday(holiday_id, holiday_date, name, holiday_type, half_day_end_time, is_recurring)
        return holiday_id

    def delete_holiday(self, holiday_id) -> bool:
        return self.holidays.pop(holiday_id, None) is not None

    def list_holidays(self):
        return sorted(self.holidays.values(), key=lambda h: h.holiday_date)

    def create_day_off(self, *, worker_id, holiday_date, holiday_type, reason, created_at) -> int:
        request_id = len(self.days_off) + 1
        self.days_off[request_id] = WorkerHoliday(
            request_id, worker_id, holiday_date, holiday_type, reason, RequestStatus.PENDING, created_at
        )
        return request_id

    def get_day_off(self, request_id):
        return self.days_off.get(request_id)

    def get_day_off_for_date(self, worker_id, holiday_date):
        return next(
            (d for d in self.days_off.values() if d.worker_id == worker_id and d.holiday_date == holiday_date),
            None,
        )

    def list_days_off(self, *, worker_id=None, start_date=None, end_date=None, status=None):
        return [
            d
            for d in self.days_off.values()
            if (worker_id is None or d.worker_id == worker_id)
            and (start_date is None or d.holiday_date >= start_date)
            and (end_date is None or d.holiday_date <= end_date)
            and (status is None or d.status == status)
        ]

    def decide_day_off(self, *, request_id, status, decided_at) -> bool:
        d = self.days_off[request_id]
        if d.status != RequestStatus.PENDING:
            return False
        self.days_off[request_id] = replace(d, status=status, decided_at=decided_at)
        return True


class InMemoryTasks:
    def __init__(self):
        self.items: dict[int, Task] = {}

    def create(self, *, title, description, assigned_to, assigned_by, priority, due_date, created_at) -> int:
        task_id = len(self.items) + 1
        self.items[task_id] = Task(
            task_id, title, description, assigned_to, assigned_by, priority, TaskStatus.PENDING, due_date, created_at
        )
        return task_id

    def get(self, task_id):
        return self.items.get(task_id)

    def update_status(self, *, task_id, status, completed_at) -> bool:
        self.items[task_id] = replace(self.items[task_id], status=status, completed_at=completed_at)
        return True

    def delete(self, task_id) -> bool:
        return self.items.pop(task_id, None) is not None

    def list_for_worker(self, worker_id):
        return [t for t in self.items.values() if t.assigned_to == worker_id]

    def list_all(self, *, status=None):
        return [t for t in self.items.values() if status is None or t.status == status]


# ---------------------------------------------------------------- fixtures


def make_user(user_id: int, role: Role, *, name: Optional[str] = None, password: str = "secret1", active=True) -> User:
    username = (name or f"{role.value}{user_id}").lower().replace(" ", "")
    return User(
        user_id=user_id,
        name=name or f"{role.value.title()} {user_id}",
        username=username,
        password_hash=generate_password_hash(password),
        role=role,
        phone=None,
        is_active=active,
    )


@pytest.fixture
def fixed_day() -> date:
    return date(2026, 3, 2)


@pytest.fixture
def at(fixed_day):
    """at(9, 15) -> datetime on the fixed day."""

    def _at(hour: int, minute: int = 0, second: int = 0) -> datetime:
        return datetime.combine(fixed_day, time(hour, minute, second))

    return _at


@pytest.fixture
def users():
    return InMemoryUsers(
        [
            make_user(1, Role.ADMIN, name="Admin"),
            make_user(2, Role.MANAGER, name="Manager"),
            make_user(SWAMIJI_ID, Role.SWAMIJI, name="Swamiji"),
            make_user(WORKER_ID, Role.WORKER, name="Ravi"),
            make_user(OTHER_WORKER_ID, Role.WORKER, name="Meena"),
        ]
    )


@pytest.fixture
def settings_repo():
    return InMemorySettings()


@pytest.fixture
def settings_service(settings_repo):
    return SettingsService(settings_repo)


@pytest.fixture
def attendance_repo(users):
    return InMemoryAttendance(users)


@pytest.fixture
def notifier():
    return RecordingNotifications()


@pytest.fixture
def approvals():
    return ApprovalChannel()


@pytest.fixture
def day_sessions(attendance_repo, users, settings_service, notifier, approvals):
    return DaySessionService(attendance_repo, users, settings_service, notifier, approvals=approvals)


@pytest.fixture
def leaves_repo():
    return InMemoryLeaves()


@pytest.fixture
def holidays_repo():
    return InMemoryHolidays()


@pytest.fixture
def tasks_repo():
    return InMemoryTasks()


@pytest.fixture
def notification_repo():
    return InMemoryNotificationRepo()


@pytest.fixture
def push_tokens():
    return InMemoryPushTokens()
