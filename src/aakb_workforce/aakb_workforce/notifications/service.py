from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import NotificationType, Role
from ..core.exceptions import NotFoundError
from ..users.repository import UserRepository
from .model import DeliveryReport, Notification, NotificationPreference
from .push import InvalidPushToken, PushDeliveryError, PushGateway
from .repository import NotificationRepository, PushTokenRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """In-app notifications plus optional push delivery.

    Without a push gateway only the in-app inbox is written.
    """

    def __init__(
        self,
        notifications: NotificationRepository,
        tokens: PushTokenRepository,
        users: UserRepository,
        *,
        push: Optional[PushGateway] = None,
    ):
        self._notifications = notifications
        self._tokens = tokens
        self._users = users
        self._push = push

    def notify_user(
        self,
        user_id: int,
        title: str,
        body: str,
        *,
        type: NotificationType = NotificationType.INFO,
        data: Optional[Dict[str, Any]] = None,
    ) -> DeliveryReport:
        title = require_non_empty(title, "Title")
        body = require_non_empty(body, "Body")
        type = NotificationType(type)

        self._notifications.create(
            user_id=user_id,
            title=title,
            body=body,
            type=type,
            data=dict(data or {}),
            created_at=now_local(),
        )

        if self._push is None:
            return DeliveryReport(user_id=user_id, stored=True)

        pref = self._tokens.get_preference(user_id) or NotificationPreference(user_id=user_id)
        if not pref.allows_push(type):
            return DeliveryReport(user_id=user_id, stored=True)

        sent = failed = 0
        payload = {k: str(v) for k, v in (data or {}).items()}
        payload["type"] = type.value
        for token in self._tokens.list_active_for_user(user_id):
            try:
                self._push.send(token=token.token, title=title, body=body, data=payload)
            except InvalidPushToken:
                logger.info("Deactivating rejected push token %s for user %s", token.token_id, user_id)
                self._tokens.deactivate(token.token_id)
                failed += 1
            except PushDeliveryError as e:
                logger.warning("Push to token %s failed: %s", token.token_id, e)
                failed += 1
            else:
                self._tokens.touch(token.token_id, now_local())
                sent += 1

        return DeliveryReport(user_id=user_id, stored=True, sent=sent, failed=failed)

    def notify_role(
        self,
        role: Role,
        title: str,
        body: str,
        *,
        type: NotificationType = NotificationType.INFO,
        data: Optional[Dict[str, Any]] = None,
    ) -> list[DeliveryReport]:
        reports = []
        for user in self._users.list_active_by_role(Role(role)):
            reports.append(self.notify_user(user.user_id, title, body, type=type, data=data))
        return reports

    def notify_overseers(
        self,
        title: str,
        body: str,
        *,
        type: NotificationType = NotificationType.INFO,
        data: Optional[Dict[str, Any]] = None,
    ) -> list[DeliveryReport]:
        return self.notify_role(Role.SWAMIJI, title, body, type=type, data=data)

    def register_token(self, user_id: int, token: str, platform: str, device_name: Optional[str] = None) -> None:
        token = require_non_empty(token, "Token")
        platform = require_non_empty(platform, "Platform")
        now = now_local()

        existing = self._tokens.get_by_token(token)
        if existing:
            self._tokens.reactivate(
                token_id=existing.token_id,
                user_id=user_id,
                platform=platform,
                device_name=device_name,
                now=now,
            )
        else:
            self._tokens.create(user_id=user_id, token=token, platform=platform, device_name=device_name, now=now)
        self._tokens.ensure_preference(user_id)

    def list_for_user(self, user_id: int, *, limit: int = 50, unread_only: bool = False) -> list[Notification]:
        return list(self._notifications.list_for_user(user_id, limit=max(1, int(limit)), unread_only=unread_only))

    def mark_read(self, user_id: int, notification_id: int) -> None:
        if not self._notifications.mark_read(user_id=user_id, notification_id=notification_id):
            raise NotFoundError("Notification not found")

    def mark_all_read(self, user_id: int) -> int:
        return self._notifications.mark_all_read(user_id)

    def unread_count(self, user_id: int) -> int:
        return self._notifications.count_unread(user_id)
