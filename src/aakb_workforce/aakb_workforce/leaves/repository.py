from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveType, RequestStatus
from .model import LeaveRequest


class LeaveRepository(Protocol):
    def create(
        self,
        *,
        worker_id: int,
        start_date: date,
        end_date: date,
        leave_type: LeaveType,
        reason: str,
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def get(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: int,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Decide a pending request; False when it was no longer pending."""
        raise NotImplementedError

    def list_for_worker(self, worker_id: int) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_by_status(self, status: Optional[RequestStatus]) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_approved_overlapping(
        self, *, start_date: date, end_date: date, worker_id: Optional[int] = None
    ) -> Sequence[LeaveRequest]:
        raise NotImplementedError
