"""Recurring task templates and the generator that turns them into tasks."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from ..common.datetime_utils import add_months
from ..common.validators import optional_float, require_non_empty, require_positive_int
from ..core.constants import RECURRING_LOOKAHEAD_DAYS
from ..core.enums import RecurrenceFrequency, Role, TaskPriority, TaskStatus, TaskType
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import RecurringTemplate
from .repository import RecurringTemplateRepository, TaskRepository
from .service import clean_manual_number

logger = logging.getLogger(__name__)

_MONTHS = {
    RecurrenceFrequency.MONTHLY: 1,
    RecurrenceFrequency.QUARTERLY: 3,
    RecurrenceFrequency.SIX_MONTHLY: 6,
    RecurrenceFrequency.YEARLY: 12,
}


def next_occurrence(template: RecurringTemplate) -> datetime:
    """One period after the last generated date (or the start date when nothing was generated yet)."""

    base = template.last_generated_date or template.start_date
    if template.frequency == RecurrenceFrequency.DAILY:
        return base + timedelta(days=1)
    if template.frequency == RecurrenceFrequency.WEEKLY:
        return base + timedelta(weeks=1)
    return add_months(base, _MONTHS[template.frequency])


def _due_for(template: RecurringTemplate, occurrence: datetime) -> datetime:
    if template.completion_within_hours:
        return occurrence + timedelta(hours=template.completion_within_hours)
    if template.completion_within_days:
        return occurrence + timedelta(days=template.completion_within_days)
    return occurrence


def _optional_positive(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    return require_positive_int(value, field_name)


class RecurringTaskService:
    def __init__(self, templates: RecurringTemplateRepository, tasks: TaskRepository, users: UserRepository):
        self._templates = templates
        self._tasks = tasks
        self._users = users

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can manage recurring tasks")

    def _get_org_template(self, org_id: int, template_id: int) -> RecurringTemplate:
        template = self._templates.get_by_id(int(template_id))
        if not template or template.org_id != int(org_id):
            raise NotFoundError("Recurring template not found")
        return template

    def _template_fields(
        self,
        *,
        org_id: int,
        title: str,
        description: Optional[str],
        task_type: TaskType,
        priority: TaskPriority,
        assignee_ids: Sequence[Any],
        frequency: RecurrenceFrequency,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        number_of_occurrences: Any,
        completion_within_hours: Any,
        completion_within_days: Any,
        patient_id: Optional[str] = None,
        location: Optional[str] = None,
        round_type: Optional[str] = None,
        follow_up_type: Optional[str] = None,
        advisory_type: Optional[str] = None,
        contact_number: Optional[str] = None,
        manual_whatsapp_number: Optional[str] = None,
        hours_to_complete: Any = None,
    ) -> dict:
        if start_date is None:
            raise ValidationError("Start date is required")
        if end_date is not None and end_date <= start_date:
            raise ValidationError("End date must be after the start date")

        ids = []
        for raw in assignee_ids or ():
            try:
                uid = int(raw)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid assignee: {raw}")
            if uid not in ids:
                ids.append(uid)
        if not ids:
            raise ValidationError("Select at least one assignee")
        hours = optional_float(hours_to_complete, "Hours to complete")
        if hours is not None and hours <= 0:
            raise ValidationError("Hours to complete must be greater than 0")

        members = {u.user_id for u in self._users.list_by_ids(ids) if u.org_id == int(org_id)}
        missing = [uid for uid in ids if uid not in members]
        if missing:
            raise ValidationError(f"Assignee {missing[0]} is not a member of this organization")

        return {
            "title": require_non_empty(title, "Title"),
            "description": (description or "").strip() or None,
            "task_type": task_type,
            "priority": priority,
            "assignee_ids": ids,
            "frequency": frequency,
            "start_date": start_date,
            "end_date": end_date,
            "number_of_occurrences": _optional_positive(number_of_occurrences, "Number of occurrences"),
            "completion_within_hours": _optional_positive(completion_within_hours, "Completion hours"),
            "completion_within_days": _optional_positive(completion_within_days, "Completion days"),
            "patient_id": (patient_id or "").strip() or None,
            "location": (location or "").strip() or None,
            "round_type": round_type or None,
            "follow_up_type": follow_up_type or None,
            "advisory_type": advisory_type or None,
            "contact_number": (contact_number or "").strip() or None,
            "manual_whatsapp_number": clean_manual_number(manual_whatsapp_number),
            "hours_to_complete": hours,
        }

    def list_templates(self, *, org_id: int) -> Sequence[RecurringTemplate]:
        return self._templates.list_for_org(int(org_id))

    def create_template(self, *, current_role: Role, org_id: int, created_by: int, **fields) -> int:
        self._require_admin(current_role)
        data = self._template_fields(org_id=org_id, **fields)
        return self._templates.create_template(org_id=int(org_id), created_by=int(created_by), **data)

    def update_template(self, *, current_role: Role, org_id: int, template_id: int, **fields) -> None:
        self._require_admin(current_role)
        template = self._get_org_template(org_id, template_id)
        data = self._template_fields(org_id=org_id, **fields)
        if not self._templates.update_template(template.template_id, **data):
            raise ValidationError("Failed to update recurring template")

    def set_template_active(self, *, current_role: Role, org_id: int, template_id: int, is_active: bool) -> None:
        self._require_admin(current_role)
        template = self._get_org_template(org_id, template_id)
        self._templates.set_active(template.template_id, is_active=bool(is_active))

    def delete_template(self, *, current_role: Role, org_id: int, template_id: int) -> None:
        self._require_admin(current_role)
        template = self._get_org_template(org_id, template_id)
        if not self._templates.delete(template.template_id):
            raise ValidationError("Failed to delete recurring template")

    def generate_due_tasks(self, *, now: Optional[datetime] = None) -> int:
        """Create the next task of every active template whose occurrence falls within the lookahead.

        Returns the number of tasks created.
        """

        now = now or datetime.now()
        horizon = now + timedelta(days=RECURRING_LOOKAHEAD_DAYS)
        created = 0

        for template in self._templates.list_active():
            if template.end_date is not None and template.end_date <= now:
                continue

            occurrence = next_occurrence(template)
            if occurrence > horizon:
                continue

            if template.number_of_occurrences is not None:
                if self._tasks.count_for_template(template.template_id) >= template.number_of_occurrences:
                    self._templates.set_active(template.template_id, is_active=False)
                    logger.info("Recurring template %s reached its occurrence limit", template.template_id)
                    continue

            self._tasks.create_task(
                org_id=template.org_id,
                task_type=template.task_type,
                title=template.title,
                priority=template.priority,
                status=TaskStatus.NEW,
                created_by=template.created_by,
                created_at=now,
                assignee_ids=list(template.assignee_ids),
                description=template.description,
                due_date=_due_for(template, occurrence),
                patient_id=template.patient_id,
                location=template.location,
                round_type=template.round_type,
                follow_up_type=template.follow_up_type,
                advisory_type=template.advisory_type,
                contact_number=template.contact_number,
                manual_whatsapp_number=template.manual_whatsapp_number,
                hours_to_complete=template.hours_to_complete,
                recurring_template_id=template.template_id,
            )
            self._templates.mark_generated(template.template_id, generated_for=occurrence)
            created += 1

        if created:
            logger.info("Generated %s recurring task(s)", created)
        return created


def template_to_dict(t: RecurringTemplate) -> dict:
    return {
        "template_id": t.template_id,
        "title": t.title,
        "description": t.description,
        "patient_id": t.patient_id,
        "location": t.location,
        "round_type": t.round_type,
        "follow_up_type": t.follow_up_type,
        "advisory_type": t.advisory_type,
        "contact_number": t.contact_number,
        "manual_whatsapp_number": t.manual_whatsapp_number,
        "hours_to_complete": t.hours_to_complete,
        "task_type": t.task_type.value,
        "priority": t.priority.value,
        "assignee_ids": list(t.assignee_ids),
        "frequency": t.frequency.value,
        "start_date": t.start_date.strftime("%Y-%m-%dT%H:%M"),
        "end_date": t.end_date.strftime("%Y-%m-%dT%H:%M") if t.end_date else None,
        "number_of_occurrences": t.number_of_occurrences,
        "completion_within_hours": t.completion_within_hours,
        "completion_within_days": t.completion_within_days,
        "last_generated_date": t.last_generated_date.strftime("%Y-%m-%dT%H:%M") if t.last_generated_date else None,
        "next_occurrence": next_occurrence(t).strftime("%Y-%m-%dT%H:%M"),
        "is_active": t.is_active,
    }
