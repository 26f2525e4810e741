from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "admin"
    MANAGER = "manager"
    SWAMIJI = "swamiji"
    WORKER = "worker"


class WorkMode(str, Enum):
    """Activity context of a worker, tracked per time segment."""

    OFFICE = "office"
    FIELD = "field"
    EVENT = "event"


class AttendanceStatus(str, Enum):
    """Attendance status stored per worker-day.

    ABSENT is derived for days without a record and never written.
    """

    PRESENT = "present"
    LATE = "late"
    FIELD = "field"
    EVENT = "event"
    COMPLETED = "completed"
    UNDERTIME = "undertime"
    OVERTIME = "overtime"
    EARLY_APPROVED = "early_approved"
    ABSENT = "absent"


class DayState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    WORKING = "WORKING"
    FIELD_MODE = "FIELD_MODE"
    EVENT_MODE = "EVENT_MODE"
    ENDED = "ENDED"


class DeviceClass(str, Enum):
    KIOSK = "kiosk"
    LAPTOP = "laptop"
    MOBILE = "mobile"


class RequestStatus(str, Enum):
    """Approval flow state for leave and day-off requests."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveType(str, Enum):
    SICK = "sick"
    CASUAL = "casual"
    EMERGENCY = "emergency"
    OTHER = "other"


class HolidayType(str, Enum):
    FULL = "full"
    HALF = "half"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class NotificationType(str, Enum):
    INFO = "info"
    TASK = "task"
    LEAVE = "leave"
    SYSTEM = "system"
