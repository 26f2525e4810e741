from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Sequence

from ..core.enums import NotificationType
from .model import Notification, NotificationPreference, PushToken


class NotificationRepository(Protocol):
    def create(
        self,
        *,
        user_id: int,
        title: str,
        body: str,
        type: NotificationType,
        data: Dict[str, Any],
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, limit: int, unread_only: bool = False) -> Sequence[Notification]:
        raise NotImplementedError

    def mark_read(self, *, user_id: int, notification_id: int) -> bool:
        raise NotImplementedError

    def mark_all_read(self, user_id: int) -> int:
        raise NotImplementedError

    def count_unread(self, user_id: int) -> int:
        raise NotImplementedError


class PushTokenRepository(Protocol):
    def list_active_for_user(self, user_id: int) -> Sequence[PushToken]:
        raise NotImplementedError

    def get_by_token(self, token: str) -> Optional[PushToken]:
        raise NotImplementedError

    def create(self, *, user_id: int, token: str, platform: str, device_name: Optional[str], now: datetime) -> int:
        raise NotImplementedError

    def reactivate(self, *, token_id: int, user_id: int, platform: str, device_name: Optional[str], now: datetime) -> None:
        raise NotImplementedError

    def deactivate(self, token_id: int) -> None:
        raise NotImplementedError

    def touch(self, token_id: int, now: datetime) -> None:
        raise NotImplementedError

    def get_preference(self, user_id: int) -> Optional[NotificationPreference]:
        raise NotImplementedError

    def ensure_preference(self, user_id: int) -> None:
        raise NotImplementedError
