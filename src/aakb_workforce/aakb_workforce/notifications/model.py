from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import NotificationType


@dataclass(frozen=True)
class Notification:
    notification_id: int
    user_id: int
    title: str
    body: str
    type: NotificationType = NotificationType.INFO
    data: Dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class PushToken:
    token_id: int
    user_id: int
    token: str
    platform: str
    device_name: Optional[str] = None
    is_active: bool = True
    last_used: Optional[datetime] = None


@dataclass(frozen=True)
class NotificationPreference:
    user_id: int
    push_enabled: bool = True
    task_notifications: bool = True
    leave_notifications: bool = True
    system_notifications: bool = True

    def allows_push(self, type_: NotificationType) -> bool:
        if not self.push_enabled:
            return False
        return {
            NotificationType.TASK: self.task_notifications,
            NotificationType.LEAVE: self.leave_notifications,
            NotificationType.SYSTEM: self.system_notifications,
        }.get(type_, True)


@dataclass(frozen=True)
class DeliveryReport:
    """Outcome of one notify_user call."""

    user_id: int
    stored: bool
    sent: int = 0
    failed: int = 0
