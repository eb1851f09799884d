from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for permission checks."""

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    STAFF = "staff"

    @property
    def is_admin(self) -> bool:
        return self in {Role.ADMIN, Role.SUPERADMIN}


class TaskType(str, Enum):
    QUICK_ADVISORY = "quickAdvisory"
    CLINICAL_ROUND = "clinicalRound"
    FOLLOW_UP = "followUp"
    PERSONAL_TASK = "personalTask"


class TaskPriority(str, Enum):
    CRITICAL = "critical"
    MODERATE = "moderate"
    LESS_IMPORTANT = "lessImportant"

    @property
    def rank(self) -> int:
        return {TaskPriority.CRITICAL: 0, TaskPriority.MODERATE: 1, TaskPriority.LESS_IMPORTANT: 2}[self]


class TaskStatus(str, Enum):
    NEW = "new"
    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SIX_MONTHLY = "6monthly"
    YEARLY = "yearly"


class NotificationType(str, Enum):
    TASK_ASSIGNED = "task_assigned"
    TASK_URGENT = "task_urgent"
    TASK_OVERDUE = "task_overdue"
    TASK_DUE = "task_due"
    TASK_COMPLETED = "task_completed"
    TASK_UPDATED = "task_updated"
    TASK_COMMENT = "task_comment"
    LEAVE_REQUEST_NEW = "leave_request_new"
    LEAVE_REQUEST_APPROVED = "leave_request_approved"
    LEAVE_REQUEST_REJECTED = "leave_request_rejected"


class NotificationTier(str, Enum):
    """Delivery tier for WhatsApp messages.

    HIGH is sent immediately, MEDIUM in consolidated batches, LOW only ever
    ends up in a digest and is never pushed on its own.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EnforcementMode(str, Enum):
    STRICT = "strict"
    WARNING = "warning"


class LeaveType(str, Enum):
    CASUAL = "casual"
    SICK = "sick"
    EARNED = "earned"
    UNPAID = "unpaid"
    HALF_DAY = "half_day"


class RequestStatus(str, Enum):
    """Approval workflow status (leave requests, regularizations)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AttendanceStatus(str, Enum):
    """Check-in/check-out outcome decided by the attendance strategies."""

    ON_TIME = "on_time"
    LATE = "late"
    EARLY_OUT = "early_out"
    LATE_AND_EARLY_OUT = "late_and_early_out"
