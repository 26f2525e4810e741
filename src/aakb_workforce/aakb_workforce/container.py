from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import time
from typing import Optional

from .attendance.approvals import ApprovalChannel
from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import DaySessionService
from .core.constants import DEFAULT_LATE_CUTOFF
from .database.connection import DBConfig, DatabaseConnection
from .holidays.mysql_holiday_repository import MySQLHolidayRepository
from .holidays.service import HolidayService
from .leaves.mysql_leave_repository import MySQLLeaveRepository
from .leaves.service import LeaveService
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.mysql_push_token_repository import MySQLPushTokenRepository
from .notifications.push import FirebasePushGateway, PushGateway
from .notifications.service import NotificationService
from .reports.service import AttendanceReportService
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.service import SettingsService
from .tasks.mysql_task_repository import MySQLTaskRepository
from .tasks.service import TaskService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    auth_service: AuthService
    user_service: UserService
    settings_service: SettingsService
    notification_service: NotificationService
    day_session_service: DaySessionService
    leave_service: LeaveService
    holiday_service: HolidayService
    task_service: TaskService
    report_service: AttendanceReportService
    approvals: ApprovalChannel
    conn: Optional[DatabaseConnection] = None


def build_container(
    *,
    db_config: dict,
    late_cutoff: time = DEFAULT_LATE_CUTOFF,
    firebase_credentials_file: Optional[str] = None,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    settings_repo = MySQLSettingsRepository(conn)
    holiday_settings_repo = MySQLSettingsRepository(conn, table="holiday_settings")

    push: Optional[PushGateway] = None
    if firebase_credentials_file:
        push = FirebasePushGateway.from_credentials_file(firebase_credentials_file)
    else:
        logger.info("FIREBASE_CREDENTIALS_FILE not set; push delivery disabled")

    notification_service = NotificationService(
        MySQLNotificationRepository(conn),
        MySQLPushTokenRepository(conn),
        users_repo,
        push=push,
    )
    settings_service = SettingsService(settings_repo, default_late_cutoff=late_cutoff)
    approvals = ApprovalChannel()
    day_session_service = DaySessionService(
        attendance_repo,
        users_repo,
        settings_service,
        notification_service,
        approvals=approvals,
        strategy_factory=AttendanceStrategyFactory(),
    )
    leave_service = LeaveService(MySQLLeaveRepository(conn), notification_service)
    holiday_service = HolidayService(MySQLHolidayRepository(conn), holiday_settings_repo, notification_service)
    task_service = TaskService(MySQLTaskRepository(conn), users_repo, notification_service)
    report_service = AttendanceReportService(attendance_repo, users_repo, holiday_service, leave_service)

    return Container(
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        settings_service=settings_service,
        notification_service=notification_service,
        day_session_service=day_session_service,
        leave_service=leave_service,
        holiday_service=holiday_service,
        task_service=task_service,
        report_service=report_service,
        approvals=approvals,
        conn=conn,
    )
