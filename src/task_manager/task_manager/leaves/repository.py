from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveType, RequestStatus
from .model import LeaveRequest, RegularizationRequest


class LeaveRepository(Protocol):
    # Leave requests
    def create_leave(
        self,
        *,
        user_id: int,
        org_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: Optional[date],
        reason: str,
        is_emergency: bool,
        is_post_facto: bool,
    ) -> int:
        raise NotImplementedError

    def set_approval_task(self, request_id: int, task_id: int) -> bool:
        raise NotImplementedError

    def get_leave(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_leaves(
        self,
        *,
        org_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        limit: int = 200,
    ) -> Sequence[dict]:
        """Return UI rows (joined with user)."""

        raise NotImplementedError

    def decide_leave(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: int,
        decided_at: datetime,
        admin_note: Optional[str] = None,
    ) -> bool:
        """Record a decision; only a pending request can be decided."""

        raise NotImplementedError

    # Attendance regularization
    def create_regularization(
        self,
        *,
        attendance_id: int,
        user_id: int,
        requested_punch_in: Optional[time],
        requested_punch_out: Optional[time],
        reason: str,
    ) -> int:
        raise NotImplementedError

    def get_regularization(self, request_id: int) -> Optional[RegularizationRequest]:
        raise NotImplementedError

    def has_pending_regularization(self, attendance_id: int) -> bool:
        raise NotImplementedError

    def list_regularizations(
        self,
        *,
        org_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        limit: int = 200,
    ) -> Sequence[dict]:
        raise NotImplementedError

    def decide_regularization(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: int,
        decided_at: datetime,
        admin_note: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError
