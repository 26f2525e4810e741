from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import NotificationPreference, PushToken
from .repository import PushTokenRepository


def _to_token(r: dict) -> PushToken:
    return PushToken(
        token_id=int(r["token_id"]),
        user_id=int(r["user_id"]),
        token=r["token"],
        platform=r["platform"],
        device_name=r.get("device_name"),
        is_active=bool(r.get("is_active")),
        last_used=r.get("last_used"),
    )


class MySQLPushTokenRepository(PushTokenRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active_for_user(self, user_id: int) -> Sequence[PushToken]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT token_id, user_id, token, platform, device_name, is_active, last_used
                FROM push_tokens
                WHERE user_id=%s AND is_active=1
                """,
                (int(user_id),),
            )
            return [_to_token(r) for r in fetchall(cur)]

    def get_by_token(self, token: str) -> Optional[PushToken]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT token_id, user_id, token, platform, device_name, is_active, last_used
                FROM push_tokens WHERE token=%s
                """,
                (token,),
            )
            r = fetchone(cur)
            return _to_token(r) if r else None

    def create(self, *, user_id: int, token: str, platform: str, device_name: Optional[str], now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO push_tokens(user_id, token, platform, device_name, is_active, last_used)
                VALUES(%s,%s,%s,%s,1,%s)
                """,
                (int(user_id), token, platform, device_name, now),
            )
            return int(cur.lastrowid)

    def reactivate(self, *, token_id: int, user_id: int, platform: str, device_name: Optional[str], now: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE push_tokens
                SET user_id=%s, platform=%s, device_name=%s, is_active=1, last_used=%s
                WHERE token_id=%s
                """,
                (int(user_id), platform, device_name, now, int(token_id)),
            )

    def deactivate(self, token_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE push_tokens SET is_active=0 WHERE token_id=%s", (int(token_id),))

    def touch(self, token_id: int, now: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE push_tokens SET last_used=%s WHERE token_id=%s", (now, int(token_id)))

    def get_preference(self, user_id: int) -> Optional[NotificationPreference]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, push_enabled, task_notifications, leave_notifications, system_notifications
                FROM notification_settings WHERE user_id=%s
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return NotificationPreference(
                user_id=int(r["user_id"]),
                push_enabled=bool(r["push_enabled"]),
                task_notifications=bool(r["task_notifications"]),
                leave_notifications=bool(r["leave_notifications"]),
                system_notifications=bool(r["system_notifications"]),
            )

    def ensure_preference(self, user_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT IGNORE INTO notification_settings(user_id) VALUES(%s)", (int(user_id),))
