from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..attendance.repository import AttendanceRepository
from ..attendance.service import worked_hours
from ..common.datetime_utils import parse_hhmm
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_BREAK_MINUTES, LEAVE_APPROVAL_DUE_HOURS
from ..core.enums import LeaveType, NotificationType, RequestStatus, Role, TaskPriority, TaskStatus, TaskType
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..notifications.messages import leave_decision_message, leave_request_admin_message
from ..notifications.service import NotificationService
from ..tasks.repository import TaskRepository
from ..users.repository import UserRepository
from .model import LeaveRequest, RegularizationRequest
from .repository import LeaveRepository

logger = logging.getLogger(__name__)


def approval_priority(*, is_emergency: bool, is_post_facto: bool) -> TaskPriority:
    if is_emergency:
        return TaskPriority.CRITICAL
    if is_post_facto:
        return TaskPriority.MODERATE
    return TaskPriority.LESS_IMPORTANT


def approval_title(employee_name: str, leave_type: LeaveType, is_post_facto: bool) -> str:
    title = f"Leave Request: {employee_name} - {leave_type.value.upper()}"
    return title + " (Post Facto)" if is_post_facto else title


class LeaveService:
    """Use case: leave requests (approved through a task on the admin's board) and attendance regularization."""

    def __init__(
        self,
        leaves: LeaveRepository,
        users: UserRepository,
        tasks: TaskRepository,
        attendance: AttendanceRepository,
        notifications: NotificationService,
    ):
        self._leaves = leaves
        self._users = users
        self._tasks = tasks
        self._attendance = attendance
        self._notifications = notifications

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can decide requests")

    def _get_org_leave(self, org_id: int, request_id: int) -> LeaveRequest:
        req = self._leaves.get_leave(int(request_id))
        if not req or req.org_id != int(org_id):
            raise NotFoundError("Leave request not found")
        return req

    def request_leave(
        self,
        *,
        user_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: Optional[date] = None,
        reason: str,
        is_emergency: bool = False,
        now: Optional[datetime] = None,
    ) -> int:
        now = now or datetime.now()
        reason = require_non_empty(reason, "Reason")
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date must be on or after the start date")

        employee = self._users.get_by_id(int(user_id))
        if not employee or not employee.is_active:
            raise ValidationError("Employee does not exist")

        admin = self._users.find_org_admin(employee.org_id)
        if not admin:
            raise ValidationError("No administrator found for your organization")

        is_post_facto = start_date < now.date()

        request_id = self._leaves.create_leave(
            user_id=employee.user_id,
            org_id=employee.org_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            is_emergency=bool(is_emergency),
            is_post_facto=is_post_facto,
        )

        period = start_date.strftime("%Y-%m-%d")
        if end_date and end_date != start_date:
            period += f" to {end_date.strftime('%Y-%m-%d')}"

        task_id = self._tasks.create_task(
            org_id=employee.org_id,
            task_type=TaskType.PERSONAL_TASK,
            title=approval_title(employee.full_name, leave_type, is_post_facto),
            description=f"{leave_type.value} leave for {period}.\nReason: {reason}\nLeave request #{request_id}",
            priority=approval_priority(is_emergency=bool(is_emergency), is_post_facto=is_post_facto),
            status=TaskStatus.PENDING,
            created_by=employee.user_id,
            created_at=now,
            assignee_ids=[admin.user_id],
            due_date=now + timedelta(hours=LEAVE_APPROVAL_DUE_HOURS),
            hours_to_complete=1,
        )
        self._leaves.set_approval_task(request_id, task_id)

        self._notifications.notify(
            user_id=admin.user_id,
            notification_type=NotificationType.LEAVE_REQUEST_NEW,
            title=f"Leave request from {employee.full_name}",
            message=f"{employee.full_name} requested {leave_type.value} leave ({period})",
            task_id=task_id,
            whatsapp_number=admin.whatsapp_number,
            whatsapp_message=leave_request_admin_message(
                admin_name=admin.full_name,
                employee_name=employee.full_name,
                leave_type=leave_type.value,
                start_date=start_date,
                end_date=end_date,
                reason=reason,
                is_emergency=bool(is_emergency),
                is_post_facto=is_post_facto,
            ),
        )
        logger.info("Leave request %s created for user %s (task %s)", request_id, employee.user_id, task_id)
        return request_id

    def approve_leave(self, **kwargs) -> None:
        self._decide_leave(status=RequestStatus.APPROVED, **kwargs)

    def reject_leave(self, **kwargs) -> None:
        self._decide_leave(status=RequestStatus.REJECTED, **kwargs)

    def _decide_leave(
        self,
        *,
        status: RequestStatus,
        current_role: Role,
        admin_user_id: int,
        org_id: int,
        request_id: int,
        admin_note: str = "",
        now: Optional[datetime] = None,
    ) -> None:
        self._require_admin(current_role)
        now = now or datetime.now()
        req = self._get_org_leave(org_id, request_id)
        if req.status != RequestStatus.PENDING:
            raise ValidationError("This request has already been processed")

        note = (admin_note or "").strip() or None
        ok = self._leaves.decide_leave(
            request_id=req.request_id,
            status=status,
            decided_by=int(admin_user_id),
            decided_at=now,
            admin_note=note,
        )
        if not ok:
            raise ValidationError("This request has already been processed")

        if req.approval_task_id:
            self._tasks.set_status(req.approval_task_id, status=TaskStatus.COMPLETED, completed_at=now, updated_at=now)

        approved = status == RequestStatus.APPROVED
        employee = self._users.get_by_id(req.user_id)
        if employee:
            self._notifications.notify(
                user_id=employee.user_id,
                notification_type=(
                    NotificationType.LEAVE_REQUEST_APPROVED if approved else NotificationType.LEAVE_REQUEST_REJECTED
                ),
                title="Leave approved" if approved else "Leave rejected",
                message=f"Your {req.leave_type.value} leave from {req.start_date:%Y-%m-%d} was {status.value}",
                whatsapp_number=employee.whatsapp_number,
                whatsapp_message=leave_decision_message(
                    employee_name=employee.full_name,
                    leave_type=req.leave_type.value,
                    start_date=req.start_date,
                    approved=approved,
                    admin_note=note,
                ),
            )

    def list_my_leaves(self, *, user_id: int) -> Sequence[dict]:
        return self._leaves.list_leaves(user_id=int(user_id))

    def list_pending(self, *, current_role: Role, org_id: int) -> Sequence[dict]:
        self._require_admin(current_role)
        return self._leaves.list_leaves(org_id=int(org_id), status=RequestStatus.PENDING, limit=500)

    # -------- Regularization --------
    def request_regularization(
        self,
        *,
        user_id: int,
        attendance_id: int,
        reason: str,
        requested_punch_in: Optional[str] = None,
        requested_punch_out: Optional[str] = None,
    ) -> int:
        rec = self._attendance.get_by_id(int(attendance_id))
        if not rec or rec.user_id != int(user_id):
            raise NotFoundError("Attendance record not found")

        reason = require_non_empty(reason, "Reason")
        punch_in = parse_hhmm(requested_punch_in, "Punch-in time")
        punch_out = parse_hhmm(requested_punch_out, "Punch-out time")

        if self._leaves.has_pending_regularization(rec.attendance_id):
            raise ValidationError("A regularization request for this day is already pending")

        return self._leaves.create_regularization(
            attendance_id=rec.attendance_id,
            user_id=int(user_id),
            requested_punch_in=punch_in,
            requested_punch_out=punch_out,
            reason=reason,
        )

    def _get_org_regularization(self, org_id: int, request_id: int) -> RegularizationRequest:
        req = self._leaves.get_regularization(int(request_id))
        if not req:
            raise NotFoundError("Regularization request not found")
        rec = self._attendance.get_by_id(req.attendance_id)
        if not rec or rec.org_id != int(org_id):
            raise NotFoundError("Regularization request not found")
        return req

    def approve_regularization(
        self,
        *,
        current_role: Role,
        admin_user_id: int,
        org_id: int,
        request_id: int,
        admin_note: str = "",
        now: Optional[datetime] = None,
    ) -> None:
        self._require_admin(current_role)
        now = now or datetime.now()
        req = self._get_org_regularization(org_id, request_id)
        if req.status != RequestStatus.PENDING:
            raise ValidationError("This request has already been processed")

        rec = self._attendance.get_by_id(req.attendance_id)
        new_in = rec.punch_in_time
        new_out = rec.punch_out_time
        if req.requested_punch_in:
            new_in = datetime.combine(rec.work_date, req.requested_punch_in)
        if req.requested_punch_out:
            new_out = datetime.combine(rec.work_date, req.requested_punch_out)
            if new_out < new_in:
                # overnight shift: the punch-out belongs to the next calendar day
                new_out += timedelta(days=1)

        total = effective = None
        if new_out is not None:
            break_hours = rec.break_hours if rec.break_hours is not None else DEFAULT_BREAK_MINUTES / 60
            total, effective = worked_hours(new_in, new_out, break_hours)

        ok = self._attendance.apply_regularization(
            attendance_id=rec.attendance_id,
            punch_in_time=new_in,
            punch_out_time=new_out,
            total_hours=total,
            effective_hours=effective,
            regularized_by=int(admin_user_id),
            reason=req.reason,
            at=now,
        )
        if not ok:
            raise ValidationError("Failed to update the attendance record")

        self._leaves.decide_regularization(
            request_id=req.request_id,
            status=RequestStatus.APPROVED,
            decided_by=int(admin_user_id),
            decided_at=now,
            admin_note=(admin_note or "").strip() or None,
        )

    def reject_regularization(
        self,
        *,
        current_role: Role,
        admin_user_id: int,
        org_id: int,
        request_id: int,
        admin_note: str = "",
        now: Optional[datetime] = None,
    ) -> None:
        self._require_admin(current_role)
        req = self._get_org_regularization(org_id, request_id)
        ok = self._leaves.decide_regularization(
            request_id=req.request_id,
            status=RequestStatus.REJECTED,
            decided_by=int(admin_user_id),
            decided_at=now or datetime.now(),
            admin_note=(admin_note or "").strip() or None,
        )
        if not ok:
            raise ValidationError("This request has already been processed")

    def list_my_regularizations(self, *, user_id: int) -> Sequence[dict]:
        return self._leaves.list_regularizations(user_id=int(user_id))

    def list_pending_regularizations(self, *, current_role: Role, org_id: int) -> Sequence[dict]:
        self._require_admin(current_role)
        return self._leaves.list_regularizations(org_id=int(org_id), status=RequestStatus.PENDING, limit=500)
