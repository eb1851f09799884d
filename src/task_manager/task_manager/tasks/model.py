from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import RecurrenceFrequency, TaskPriority, TaskStatus, TaskType


@dataclass(frozen=True)
class Task:
    task_id: int
    org_id: int
    task_type: TaskType
    title: str
    priority: TaskPriority
    status: TaskStatus
    created_by: int
    created_at: datetime
    assignee_ids: tuple[int, ...] = ()
    description: Optional[str] = None
    patient_id: Optional[str] = None
    updated_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    location: Optional[str] = None
    round_type: Optional[str] = None
    follow_up_type: Optional[str] = None
    advisory_type: Optional[str] = None
    contact_number: Optional[str] = None
    manual_whatsapp_number: Optional[str] = None
    hours_to_complete: Optional[float] = None
    recurring_template_id: Optional[int] = None
    overdue_alert_count: int = 0
    last_overdue_alert_at: Optional[datetime] = None

    def is_overdue(self, now: datetime) -> bool:
        return self.status != TaskStatus.COMPLETED and self.due_date is not None and self.due_date < now

    def display_status(self, now: datetime) -> TaskStatus:
        """Stored status, except that a past-due open task shows as overdue."""
        return TaskStatus.OVERDUE if self.is_overdue(now) else self.status


@dataclass(frozen=True)
class QualityControlEntry:
    entry_id: int
    task_id: int
    user_id: int
    entry_date: date
    description: str
    remark: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class RecurringTemplate:
    template_id: int
    org_id: int
    title: str
    task_type: TaskType
    priority: TaskPriority
    created_by: int
    frequency: RecurrenceFrequency
    start_date: datetime
    assignee_ids: tuple[int, ...] = ()
    description: Optional[str] = None
    patient_id: Optional[str] = None
    location: Optional[str] = None
    round_type: Optional[str] = None
    follow_up_type: Optional[str] = None
    advisory_type: Optional[str] = None
    contact_number: Optional[str] = None
    manual_whatsapp_number: Optional[str] = None
    hours_to_complete: Optional[float] = None
    end_date: Optional[datetime] = None
    number_of_occurrences: Optional[int] = None
    completion_within_hours: Optional[int] = None
    completion_within_days: Optional[int] = None
    last_generated_date: Optional[datetime] = None
    is_active: bool = True


@dataclass(frozen=True)
class TaskFilter:
    """Board filters; every field is optional."""

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    task_type: Optional[TaskType] = None
    assignee_id: Optional[int] = None
    search: Optional[str] = None
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    sort_by: str = "due_date"
    descending: bool = False
