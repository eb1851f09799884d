from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional, Sequence

from ..common.phone import format_phone_number, is_valid_whatsapp_number
from ..common.validators import optional_float, require_non_empty
from ..core.enums import NotificationType, Role, TaskPriority, TaskStatus, TaskType
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..notifications.messages import (
    task_assigned_message,
    task_completed_message,
    task_reminder_message,
    task_updated_message,
)
from ..notifications.service import NotificationService
from ..users.model import User
from ..users.repository import UserRepository
from .model import QualityControlEntry, Task, TaskFilter
from .repository import EDITABLE_TASK_FIELDS, TaskRepository

logger = logging.getLogger(__name__)

SORT_FIELDS = ("due_date", "priority", "created_at")
REMINDER_LEAD = timedelta(hours=1)


def clean_manual_number(value: Optional[str]) -> Optional[str]:
    raw = (value or "").strip()
    if not raw:
        return None
    if not is_valid_whatsapp_number(raw):
        raise ValidationError("WhatsApp number must have 10 digits")
    return format_phone_number(raw)


def _sort_key(sort_by: str):
    if sort_by == "priority":
        return lambda t: (t.priority.rank, t.created_at)
    if sort_by == "created_at":
        return lambda t: t.created_at
    return lambda t: t.due_date


def _matches(task: Task, f: TaskFilter, now: datetime) -> bool:
    if f.status and task.display_status(now) != f.status:
        return False
    if f.priority and task.priority != f.priority:
        return False
    if f.task_type and task.task_type != f.task_type:
        return False
    if f.assignee_id is not None and int(f.assignee_id) not in task.assignee_ids:
        return False
    if f.due_from and (task.due_date is None or task.due_date < f.due_from):
        return False
    if f.due_to and (task.due_date is None or task.due_date > f.due_to):
        return False
    if f.search:
        needle = f.search.strip().lower()
        haystack = " ".join(x for x in (task.title, task.description, task.patient_id) if x).lower()
        if needle not in haystack:
            return False
    return True


class TaskService:
    """Use case: task board (create, edit, status changes, listing)."""

    def __init__(self, tasks: TaskRepository, users: UserRepository, notifications: NotificationService):
        self._tasks = tasks
        self._users = users
        self._notifications = notifications

    def _get_org_task(self, org_id: int, task_id: int) -> Task:
        task = self._tasks.get_by_id(int(task_id))
        if not task or task.org_id != int(org_id):
            raise NotFoundError("Task not found")
        return task

    def _resolve_assignees(self, org_id: int, assignee_ids: Sequence[Any]) -> list[User]:
        ids: list[int] = []
        for raw in assignee_ids or ():
            try:
                uid = int(raw)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid assignee: {raw}")
            if uid not in ids:
                ids.append(uid)

        users = {u.user_id: u for u in self._users.list_by_ids(ids)} if ids else {}
        out: list[User] = []
        for uid in ids:
            user = users.get(uid)
            if not user or user.org_id != int(org_id) or not user.is_active:
                raise ValidationError(f"Assignee {uid} is not an active member of this organization")
            out.append(user)
        return out

    @staticmethod
    def _can_edit(task: Task, current_role: Role, current_user_id: int) -> bool:
        return current_role.is_admin or task.created_by == int(current_user_id)

    @staticmethod
    def _can_change_status(task: Task, current_role: Role, current_user_id: int) -> bool:
        uid = int(current_user_id)
        return current_role.is_admin or task.created_by == uid or uid in task.assignee_ids

    def get_task(self, *, org_id: int, task_id: int) -> Task:
        return self._get_org_task(org_id, task_id)

    def create_task(
        self,
        *,
        current_user_id: int,
        org_id: int,
        task_type: TaskType,
        title: str,
        priority: TaskPriority = TaskPriority.MODERATE,
        assignee_ids: Sequence[Any] = (),
        description: Optional[str] = None,
        patient_id: Optional[str] = None,
        due_date: Optional[datetime] = None,
        hours_to_complete: Any = None,
        location: Optional[str] = None,
        round_type: Optional[str] = None,
        follow_up_type: Optional[str] = None,
        advisory_type: Optional[str] = None,
        contact_number: Optional[str] = None,
        manual_whatsapp_number: Optional[str] = None,
        status: TaskStatus = TaskStatus.NEW,
        now: Optional[datetime] = None,
    ) -> Task:
        now = now or datetime.now()
        title = require_non_empty(title, "Title")
        if status in {TaskStatus.OVERDUE, TaskStatus.COMPLETED}:
            raise ValidationError(f"A new task cannot start as {status.value}")

        if not assignee_ids and task_type == TaskType.PERSONAL_TASK:
            assignee_ids = [current_user_id]
        assignees = self._resolve_assignees(org_id, assignee_ids)
        if not assignees:
            raise ValidationError("Select at least one assignee")

        hours = optional_float(hours_to_complete, "Hours to complete")
        if hours is not None and hours <= 0:
            raise ValidationError("Hours to complete must be greater than 0")
        if due_date is None and hours is not None:
            due_date = now + timedelta(hours=hours)

        manual_number = clean_manual_number(manual_whatsapp_number)

        task_id = self._tasks.create_task(
            org_id=int(org_id),
            task_type=task_type,
            title=title,
            priority=priority,
            status=status,
            created_by=int(current_user_id),
            created_at=now,
            assignee_ids=[u.user_id for u in assignees],
            description=(description or "").strip() or None,
            patient_id=(patient_id or "").strip() or None,
            due_date=due_date,
            location=(location or "").strip() or None,
            round_type=round_type or None,
            follow_up_type=follow_up_type or None,
            advisory_type=advisory_type or None,
            contact_number=(contact_number or "").strip() or None,
            manual_whatsapp_number=manual_number,
            hours_to_complete=hours,
        )
        task = self._get_org_task(org_id, task_id)
        self._notify_assigned(task, assignees, now=now)
        logger.info("Task %s created by user %s (%s assignee(s))", task_id, current_user_id, len(assignees))
        return task

    def _notify_assigned(self, task: Task, assignees: Sequence[User], *, now: datetime) -> None:
        urgent = task.priority == TaskPriority.CRITICAL
        ntype = NotificationType.TASK_URGENT if urgent else NotificationType.TASK_ASSIGNED
        for user in assignees:
            if user.user_id == task.created_by:
                continue
            self._notifications.notify(
                user_id=user.user_id,
                notification_type=ntype,
                title=("Urgent task: " if urgent else "New task: ") + task.title,
                message=f"You have been assigned: {task.title}",
                task_id=task.task_id,
                whatsapp_number=task.manual_whatsapp_number or user.whatsapp_number,
                whatsapp_message=task_assigned_message(
                    assignee_name=user.full_name,
                    title=task.title,
                    priority=task.priority.value,
                    due_date=task.due_date,
                    description=task.description,
                    patient_id=task.patient_id,
                    urgent=urgent,
                ),
            )

        if task.due_date and task.due_date - now > REMINDER_LEAD:
            for user in assignees:
                self._notifications.notify(
                    user_id=user.user_id,
                    notification_type=NotificationType.TASK_DUE,
                    title=f"Due soon: {task.title}",
                    message=f"{task.title} is due at {task.due_date.strftime('%Y-%m-%d %H:%M')}",
                    task_id=task.task_id,
                    whatsapp_number=task.manual_whatsapp_number or user.whatsapp_number,
                    whatsapp_message=task_reminder_message(
                        assignee_name=user.full_name, title=task.title, due_date=task.due_date
                    ),
                    scheduled_for=task.due_date - REMINDER_LEAD,
                )

    def update_task(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        org_id: int,
        task_id: int,
        changes: dict,
        assignee_ids: Optional[Sequence[Any]] = None,
        now: Optional[datetime] = None,
    ) -> Task:
        """Partial update: only keys present in ``changes`` are written."""

        now = now or datetime.now()
        task = self._get_org_task(org_id, task_id)
        if not self._can_edit(task, current_role, current_user_id):
            raise AuthorizationError("Only the creator or an administrator can edit this task")

        unknown = set(changes) - set(EDITABLE_TASK_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        cleaned = dict(changes)
        if "title" in cleaned:
            cleaned["title"] = require_non_empty(cleaned["title"], "Title")
        if "priority" in cleaned:
            try:
                cleaned["priority"] = TaskPriority(cleaned["priority"])
            except ValueError:
                raise ValidationError(f"Unknown priority: {cleaned['priority']}")
        if "hours_to_complete" in cleaned:
            cleaned["hours_to_complete"] = optional_float(cleaned["hours_to_complete"], "Hours to complete")
        if "manual_whatsapp_number" in cleaned:
            cleaned["manual_whatsapp_number"] = clean_manual_number(cleaned["manual_whatsapp_number"])

        if cleaned:
            self._tasks.update_task(task.task_id, changes=cleaned, updated_at=now)

        if assignee_ids is not None:
            assignees = self._resolve_assignees(org_id, assignee_ids)
            if not assignees:
                raise ValidationError("Select at least one assignee")
            self._tasks.set_assignees(task.task_id, [u.user_id for u in assignees])

        updated = self._get_org_task(org_id, task_id)
        self._notify_updated(updated, editor_id=int(current_user_id), now=now)
        return updated

    def _notify_updated(self, task: Task, *, editor_id: int, now: datetime) -> None:
        recipients = [u for u in self._users.list_by_ids(list(task.assignee_ids)) if u.user_id != editor_id]
        for user in recipients:
            self._notifications.notify(
                user_id=user.user_id,
                notification_type=NotificationType.TASK_UPDATED,
                title=f"Task updated: {task.title}",
                message=f"{task.title} was updated",
                task_id=task.task_id,
                whatsapp_number=task.manual_whatsapp_number or user.whatsapp_number,
                whatsapp_message=task_updated_message(
                    assignee_name=user.full_name,
                    title=task.title,
                    status=task.display_status(now).value,
                    due_date=task.due_date,
                ),
            )

    def change_status(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        org_id: int,
        task_id: int,
        status: TaskStatus,
        now: Optional[datetime] = None,
    ) -> Task:
        now = now or datetime.now()
        task = self._get_org_task(org_id, task_id)
        if not self._can_change_status(task, current_role, current_user_id):
            raise AuthorizationError("You are not assigned to this task")
        if status == TaskStatus.OVERDUE:
            raise ValidationError("Overdue is set automatically from the due date")

        completed_at = now if status == TaskStatus.COMPLETED else None
        if status == TaskStatus.COMPLETED and task.status == TaskStatus.COMPLETED:
            completed_at = task.completed_at

        self._tasks.set_status(task.task_id, status=status, completed_at=completed_at, updated_at=now)

        if status == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED:
            self._notify_completed(task, completed_by_id=int(current_user_id))

        return self._get_org_task(org_id, task_id)

    def _notify_completed(self, task: Task, *, completed_by_id: int) -> None:
        if task.created_by == completed_by_id:
            return
        people = {u.user_id: u for u in self._users.list_by_ids([task.created_by, completed_by_id])}
        creator = people.get(task.created_by)
        if not creator:
            return
        completer = people.get(completed_by_id)
        completed_by = completer.full_name if completer else "a team member"
        self._notifications.notify(
            user_id=creator.user_id,
            notification_type=NotificationType.TASK_COMPLETED,
            title=f"Task completed: {task.title}",
            message=f"{task.title} was completed by {completed_by}",
            task_id=task.task_id,
            whatsapp_number=creator.whatsapp_number,
            whatsapp_message=task_completed_message(
                creator_name=creator.full_name, title=task.title, completed_by=completed_by
            ),
        )

    def delete_tasks(self, *, current_role: Role, org_id: int, task_ids: Sequence[Any]) -> int:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can delete tasks")
        ids = []
        for raw in task_ids or ():
            try:
                ids.append(int(raw))
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid task id: {raw}")
        if not ids:
            raise ValidationError("Select at least one task")
        deleted = self._tasks.delete_many(int(org_id), ids)
        logger.info("Deleted %s task(s) in org %s", deleted, org_id)
        return deleted

    def list_tasks(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        org_id: int,
        task_filter: Optional[TaskFilter] = None,
        now: Optional[datetime] = None,
    ) -> list[Task]:
        now = now or datetime.now()
        f = task_filter or TaskFilter()
        if f.sort_by not in SORT_FIELDS:
            raise ValidationError(f"Cannot sort by {f.sort_by}")

        involving = None if current_role.is_admin else int(current_user_id)
        rows = [t for t in self._tasks.list_for_org(int(org_id), involving_user_id=involving) if _matches(t, f, now)]
        if f.sort_by == "due_date":
            # undated tasks go last in either direction
            dated = sorted((t for t in rows if t.due_date), key=_sort_key(f.sort_by), reverse=f.descending)
            return dated + [t for t in rows if not t.due_date]
        rows.sort(key=_sort_key(f.sort_by), reverse=f.descending)
        return rows

    def dashboard_counts(
        self,
        *,
        org_id: int,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        now = now or datetime.now()
        counts = {s.value: 0 for s in TaskStatus}
        tasks = self._tasks.list_for_org(int(org_id))
        if user_id is not None:
            tasks = [t for t in tasks if int(user_id) in t.assignee_ids]
        for t in tasks:
            counts[t.display_status(now).value] += 1
        counts["total"] = len(tasks)
        return counts

    def add_quality_entry(
        self,
        *,
        current_user_id: int,
        org_id: int,
        task_id: int,
        entry_date: date,
        description: str,
        remark: Optional[str] = None,
    ) -> int:
        task = self._get_org_task(org_id, task_id)
        return self._tasks.add_quality_entry(
            task_id=task.task_id,
            user_id=int(current_user_id),
            entry_date=entry_date,
            description=require_non_empty(description, "Description"),
            remark=(remark or "").strip() or None,
        )

    def list_quality_entries(self, *, org_id: int, task_id: int) -> Sequence[QualityControlEntry]:
        task = self._get_org_task(org_id, task_id)
        return self._tasks.list_quality_entries(task.task_id)


def task_to_dict(task: Task, *, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now()

    def _t(value: Optional[datetime]) -> Optional[str]:
        return value.strftime("%Y-%m-%dT%H:%M:%S") if value else None

    return {
        "task_id": task.task_id,
        "type": task.task_type.value,
        "title": task.title,
        "description": task.description,
        "patient_id": task.patient_id,
        "priority": task.priority.value,
        "status": task.display_status(now).value,
        "stored_status": task.status.value,
        "assignee_ids": list(task.assignee_ids),
        "created_by": task.created_by,
        "created_at": _t(task.created_at),
        "updated_at": _t(task.updated_at),
        "due_date": _t(task.due_date),
        "completed_at": _t(task.completed_at),
        "location": task.location,
        "round_type": task.round_type,
        "follow_up_type": task.follow_up_type,
        "advisory_type": task.advisory_type,
        "contact_number": task.contact_number,
        "manual_whatsapp_number": task.manual_whatsapp_number,
        "hours_to_complete": task.hours_to_complete,
        "recurring_template_id": task.recurring_template_id,
        "overdue_alert_count": task.overdue_alert_count,
    }


def quality_entry_to_dict(entry: QualityControlEntry) -> dict:
    return {
        "entry_id": entry.entry_id,
        "task_id": entry.task_id,
        "user_id": entry.user_id,
        "entry_date": entry.entry_date.strftime("%Y-%m-%d"),
        "description": entry.description,
        "remark": entry.remark,
    }
