from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import NotificationTier, NotificationType

TIER_TYPES: dict[NotificationTier, tuple[NotificationType, ...]] = {
    NotificationTier.HIGH: (
        NotificationType.TASK_ASSIGNED,
        NotificationType.TASK_URGENT,
        NotificationType.TASK_OVERDUE,
    ),
    NotificationTier.MEDIUM: (
        NotificationType.TASK_DUE,
        NotificationType.TASK_COMPLETED,
        NotificationType.TASK_UPDATED,
        NotificationType.LEAVE_REQUEST_NEW,
        NotificationType.LEAVE_REQUEST_APPROVED,
        NotificationType.LEAVE_REQUEST_REJECTED,
    ),
    NotificationTier.LOW: (NotificationType.TASK_COMMENT,),
}

DISPLAY_NAMES: dict[NotificationType, str] = {
    NotificationType.TASK_ASSIGNED: "Task Assigned",
    NotificationType.TASK_URGENT: "Urgent Task",
    NotificationType.TASK_OVERDUE: "Task Overdue",
    NotificationType.TASK_DUE: "Task Due",
    NotificationType.TASK_COMPLETED: "Task Completed",
    NotificationType.TASK_UPDATED: "Task Updated",
    NotificationType.TASK_COMMENT: "Task Comment",
    NotificationType.LEAVE_REQUEST_NEW: "New Leave Request",
    NotificationType.LEAVE_REQUEST_APPROVED: "Leave Approved",
    NotificationType.LEAVE_REQUEST_REJECTED: "Leave Rejected",
}


def tier_for(notification_type: NotificationType) -> NotificationTier:
    for tier, types in TIER_TYPES.items():
        if notification_type in types:
            return tier
    return NotificationTier.LOW


def push_types() -> tuple[NotificationType, ...]:
    """Types that are ever pushed individually over WhatsApp (high + medium)."""
    return TIER_TYPES[NotificationTier.HIGH] + TIER_TYPES[NotificationTier.MEDIUM]


@dataclass(frozen=True)
class Notification:
    notification_id: int
    user_id: int
    notification_type: NotificationType
    title: str
    message: str
    created_at: datetime
    task_id: Optional[int] = None
    whatsapp_number: Optional[str] = None
    whatsapp_message: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    is_read: bool = False
    whatsapp_sent: bool = False
    whatsapp_sent_at: Optional[datetime] = None
    whatsapp_message_id: Optional[str] = None
    whatsapp_error: Optional[str] = None


@dataclass(frozen=True)
class PendingWhatsApp:
    """Read-model: a queued WhatsApp message joined with its recipient's organization."""

    notification_id: int
    user_id: int
    notification_type: NotificationType
    title: str
    whatsapp_number: str
    whatsapp_message: str
    created_at: datetime
    org_id: Optional[int] = None
    whatsapp_enabled: Optional[bool] = None
    whatsapp_endpoint: Optional[str] = None
    full_name: Optional[str] = None
    task_id: Optional[int] = None
    task_title: Optional[str] = None
    task_priority: Optional[str] = None
    task_due_date: Optional[datetime] = None


@dataclass(frozen=True)
class BatchResult:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    held: int = 0
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        # success means the batch ran; per-message failures are in failed/errors
        return {
            "success": True,
            "processed": self.processed,
            "sent": self.sent,
            "failed": self.failed,
            "held": self.held,
            "errors": list(self.errors),
        }
