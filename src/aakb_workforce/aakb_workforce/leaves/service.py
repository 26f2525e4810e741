from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_enum, require_non_empty
from ..core.enums import LeaveType, NotificationType, RequestStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..notifications.service import NotificationService
from .model import LeaveRequest
from .repository import LeaveRepository

logger = logging.getLogger(__name__)

_DECIDERS = {Role.SWAMIJI, Role.ADMIN}


class LeaveService:
    def __init__(self, leaves: LeaveRepository, notifications: NotificationService):
        self._leaves = leaves
        self._notifications = notifications

    def create_leave(
        self,
        *,
        current_role: Role,
        worker_id: int,
        start_date: date,
        end_date: date,
        leave_type: LeaveType | str,
        reason: str,
        now: datetime | None = None,
    ) -> int:
        if Role(current_role) != Role.WORKER:
            raise AuthorizationError("Only workers can apply for leave")
        if end_date < start_date:
            raise ValidationError("End date cannot be before start date")
        leave_type = require_enum(LeaveType, leave_type, "leave type")
        reason = require_non_empty(reason, "Reason")

        request_id = self._leaves.create(
            worker_id=int(worker_id),
            start_date=start_date,
            end_date=end_date,
            leave_type=leave_type,
            reason=reason,
            created_at=now or now_local(),
        )
        logger.info("Leave request %s created by worker %s", request_id, worker_id)
        try:
            self._notifications.notify_overseers(
                "Leave request",
                f"{leave_type.value.title()} leave {start_date.isoformat()} to {end_date.isoformat()}: {reason}",
                type=NotificationType.LEAVE,
                data={"request_id": request_id, "worker_id": worker_id},
            )
        except Exception:
            logger.warning("Leave notification failed for request %s", request_id, exc_info=True)
        return request_id

    def approve_leave(self, *, current_role: Role, decided_by: int, request_id: int) -> None:
        self._decide(current_role, decided_by, request_id, RequestStatus.APPROVED, None)

    def reject_leave(
        self,
        *,
        current_role: Role,
        decided_by: int,
        request_id: int,
        rejection_reason: str = "",
    ) -> None:
        self._decide(
            current_role,
            decided_by,
            request_id,
            RequestStatus.REJECTED,
            (rejection_reason or "").strip() or None,
        )

    def _decide(
        self,
        current_role: Role,
        decided_by: int,
        request_id: int,
        status: RequestStatus,
        rejection_reason: Optional[str],
    ) -> None:
        if Role(current_role) not in _DECIDERS:
            raise AuthorizationError("You do not have permission")

        req = self._leaves.get(request_id)
        if not req:
            raise NotFoundError("Leave request not found")
        if req.status != RequestStatus.PENDING:
            raise ValidationError("Request has already been processed")

        if not self._leaves.decide(
            request_id=req.request_id,
            status=status,
            decided_by=int(decided_by),
            decided_at=now_local(),
            rejection_reason=rejection_reason,
        ):
            raise ValidationError("Request has already been processed")

        logger.info("Leave request %s %s", request_id, status.value)
        body = f"Your leave from {req.start_date.isoformat()} to {req.end_date.isoformat()} was {status.value}"
        if rejection_reason:
            body = f"{body}: {rejection_reason}"
        try:
            self._notifications.notify_user(
                req.worker_id,
                f"Leave {status.value}",
                body,
                type=NotificationType.LEAVE,
                data={"request_id": req.request_id},
            )
        except Exception:
            logger.warning("Leave decision notification failed for request %s", request_id, exc_info=True)

    def list_my_leaves(self, worker_id: int) -> list[LeaveRequest]:
        return list(self._leaves.list_for_worker(worker_id))

    def list_by_status(self, status: RequestStatus | str | None = None) -> list[LeaveRequest]:
        if status is not None:
            status = require_enum(RequestStatus, status, "status")
        return list(self._leaves.list_by_status(status))

    def has_approved_leave_on(self, worker_id: int, day: date) -> bool:
        return bool(self._leaves.list_approved_overlapping(start_date=day, end_date=day, worker_id=worker_id))

    def approved_leaves_between(self, start_date: date, end_date: date) -> list[LeaveRequest]:
        return list(self._leaves.list_approved_overlapping(start_date=start_date, end_date=end_date))
