from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import LeaveType, RequestStatus


@dataclass(frozen=True)
class LeaveRequest:
    request_id: int
    user_id: int
    org_id: int
    leave_type: LeaveType
    start_date: date
    reason: str
    status: RequestStatus
    created_at: datetime
    end_date: Optional[date] = None
    is_emergency: bool = False
    is_post_facto: bool = False
    approval_task_id: Optional[int] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    admin_note: Optional[str] = None


@dataclass(frozen=True)
class RegularizationRequest:
    """Employee's request to correct the punch times of one attendance record."""

    request_id: int
    attendance_id: int
    user_id: int
    reason: str
    status: RequestStatus
    created_at: datetime
    requested_punch_in: Optional[time] = None
    requested_punch_out: Optional[time] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    admin_note: Optional[str] = None
