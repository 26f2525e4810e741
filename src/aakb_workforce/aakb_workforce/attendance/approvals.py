from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Dict, Optional

# Approvals older than this are dropped on the next publish.
_RETENTION = timedelta(days=1)


class ApprovalChannel:
    """In-process broadcast of early-exit approvals.

    Workers waiting on their own request block here instead of polling the
    store. Only approvals made by this process are seen; callers fall back to
    a store read when the wait times out.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._approved: Dict[int, datetime] = {}

    def publish(self, attendance_id: int, approved_at: datetime) -> None:
        with self._cond:
            cutoff = approved_at - _RETENTION
            for key in [k for k, at in self._approved.items() if at < cutoff]:
                del self._approved[key]
            self._approved.setdefault(int(attendance_id), approved_at)
            self._cond.notify_all()

    def wait(self, attendance_id: int, timeout: float) -> Optional[datetime]:
        key = int(attendance_id)
        with self._cond:
            self._cond.wait_for(lambda: key in self._approved, timeout=max(0.0, float(timeout)))
            return self._approved.get(key)

    def forget(self, attendance_id: int) -> None:
        with self._cond:
            self._approved.pop(int(attendance_id), None)

    def __len__(self) -> int:
        with self._cond:
            return len(self._approved)
