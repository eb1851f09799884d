from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import RecurrenceFrequency, TaskPriority, TaskStatus, TaskType
from .model import QualityControlEntry, RecurringTemplate, Task

# Columns ``update_task`` accepts in its ``changes`` mapping.
EDITABLE_TASK_FIELDS = (
    "title",
    "description",
    "patient_id",
    "priority",
    "due_date",
    "location",
    "round_type",
    "follow_up_type",
    "advisory_type",
    "contact_number",
    "manual_whatsapp_number",
    "hours_to_complete",
)


class TaskRepository(Protocol):
    def get_by_id(self, task_id: int) -> Optional[Task]:
        raise NotImplementedError

    def list_for_org(self, org_id: int, *, involving_user_id: Optional[int] = None) -> Sequence[Task]:
        """All tasks of an organization; restricted to tasks a user created or is assigned to when given."""

        raise NotImplementedError

    def create_task(
        self,
        *,
        org_id: int,
        task_type: TaskType,
        title: str,
        priority: TaskPriority,
        status: TaskStatus,
        created_by: int,
        created_at: datetime,
        assignee_ids: Sequence[int],
        description: Optional[str] = None,
        patient_id: Optional[str] = None,
        due_date: Optional[datetime] = None,
        location: Optional[str] = None,
        round_type: Optional[str] = None,
        follow_up_type: Optional[str] = None,
        advisory_type: Optional[str] = None,
        contact_number: Optional[str] = None,
        manual_whatsapp_number: Optional[str] = None,
        hours_to_complete: Optional[float] = None,
        recurring_template_id: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def update_task(self, task_id: int, *, changes: Mapping[str, Any], updated_at: datetime) -> bool:
        raise NotImplementedError

    def set_assignees(self, task_id: int, user_ids: Sequence[int]) -> None:
        raise NotImplementedError

    def set_status(
        self,
        task_id: int,
        *,
        status: TaskStatus,
        completed_at: Optional[datetime],
        updated_at: datetime,
    ) -> bool:
        raise NotImplementedError

    def delete_many(self, org_id: int, task_ids: Sequence[int]) -> int:
        raise NotImplementedError

    def list_overdue(self, *, now: datetime) -> Sequence[Task]:
        """Open tasks (any org) whose due date has passed."""

        raise NotImplementedError

    def record_overdue_alert(self, task_id: int, *, at: datetime) -> bool:
        raise NotImplementedError

    def count_for_template(self, template_id: int) -> int:
        raise NotImplementedError

    # Quality control
    def add_quality_entry(
        self,
        *,
        task_id: int,
        user_id: int,
        entry_date: date,
        description: str,
        remark: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def list_quality_entries(self, task_id: int) -> Sequence[QualityControlEntry]:
        raise NotImplementedError


class RecurringTemplateRepository(Protocol):
    def get_by_id(self, template_id: int) -> Optional[RecurringTemplate]:
        raise NotImplementedError

    def list_for_org(self, org_id: int) -> Sequence[RecurringTemplate]:
        raise NotImplementedError

    def list_active(self) -> Sequence[RecurringTemplate]:
        raise NotImplementedError

    def create_template(
        self,
        *,
        org_id: int,
        title: str,
        description: Optional[str],
        task_type: TaskType,
        priority: TaskPriority,
        assignee_ids: Sequence[int],
        created_by: int,
        frequency: RecurrenceFrequency,
        start_date: datetime,
        end_date: Optional[datetime],
        number_of_occurrences: Optional[int],
        completion_within_hours: Optional[int],
        completion_within_days: Optional[int],
        patient_id: Optional[str] = None,
        location: Optional[str] = None,
        round_type: Optional[str] = None,
        follow_up_type: Optional[str] = None,
        advisory_type: Optional[str] = None,
        contact_number: Optional[str] = None,
        manual_whatsapp_number: Optional[str] = None,
        hours_to_complete: Optional[float] = None,
    ) -> int:
        raise NotImplementedError

    def update_template(
        self,
        template_id: int,
        *,
        title: str,
        description: Optional[str],
        task_type: TaskType,
        priority: TaskPriority,
        assignee_ids: Sequence[int],
        frequency: RecurrenceFrequency,
        start_date: datetime,
        end_date: Optional[datetime],
        number_of_occurrences: Optional[int],
        completion_within_hours: Optional[int],
        completion_within_days: Optional[int],
        patient_id: Optional[str] = None,
        location: Optional[str] = None,
        round_type: Optional[str] = None,
        follow_up_type: Optional[str] = None,
        advisory_type: Optional[str] = None,
        contact_number: Optional[str] = None,
        manual_whatsapp_number: Optional[str] = None,
        hours_to_complete: Optional[float] = None,
    ) -> bool:
        raise NotImplementedError

    def set_active(self, template_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def mark_generated(self, template_id: int, *, generated_for: datetime) -> bool:
        raise NotImplementedError

    def delete(self, template_id: int) -> bool:
        raise NotImplementedError
