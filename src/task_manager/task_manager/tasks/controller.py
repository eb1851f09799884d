from __future__ import annotations

from datetime import date

from flask import Flask, request

from ..common.datetime_utils import parse_optional_datetime
from ..common.http import (
    admin_required,
    body_date,
    body_datetime,
    current_org_id,
    current_role,
    current_user_id,
    enum_value,
    json_body,
    login_required,
    ok,
    query_int,
)
from ..container import Container
from ..core.enums import RecurrenceFrequency, TaskPriority, TaskStatus, TaskType
from ..core.exceptions import ValidationError
from .model import TaskFilter
from .recurring import template_to_dict
from .repository import EDITABLE_TASK_FIELDS
from .service import SORT_FIELDS, quality_entry_to_dict, task_to_dict


def _task_filter() -> TaskFilter:
    args = request.args
    sort_by = args.get("sort_by") or "due_date"
    if sort_by not in SORT_FIELDS:
        raise ValidationError(f"Unknown sort field: {sort_by}")
    return TaskFilter(
        status=enum_value(TaskStatus, args.get("status"), "status"),
        priority=enum_value(TaskPriority, args.get("priority"), "priority"),
        task_type=enum_value(TaskType, args.get("type"), "task type"),
        assignee_id=query_int("assignee_id"),
        search=(args.get("search") or "").strip() or None,
        due_from=parse_optional_datetime(args.get("due_from"), "due_from"),
        due_to=parse_optional_datetime(args.get("due_to"), "due_to"),
        sort_by=sort_by,
        descending=(args.get("order") or "asc").lower() == "desc",
    )


TEMPLATE_DETAIL_FIELDS = (
    "patient_id",
    "location",
    "round_type",
    "follow_up_type",
    "advisory_type",
    "contact_number",
    "manual_whatsapp_number",
    "hours_to_complete",
)


def _template_payload(data: dict) -> dict:
    return {
        "title": data.get("title", ""),
        "description": data.get("description"),
        "task_type": enum_value(TaskType, data.get("type"), "task type", TaskType.PERSONAL_TASK),
        "priority": enum_value(TaskPriority, data.get("priority"), "priority", TaskPriority.MODERATE),
        "assignee_ids": data.get("assignee_ids") or [],
        "frequency": enum_value(RecurrenceFrequency, data.get("frequency"), "frequency", RecurrenceFrequency.DAILY),
        "start_date": body_datetime(data, "start_date", "Start date"),
        "end_date": body_datetime(data, "end_date", "End date"),
        "number_of_occurrences": data.get("number_of_occurrences"),
        "completion_within_hours": data.get("completion_within_hours"),
        "completion_within_days": data.get("completion_within_days"),
        **{key: data.get(key) for key in TEMPLATE_DETAIL_FIELDS},
    }


def register(app: Flask, container: Container) -> None:
    # -------- Tasks --------
    @app.route("/api/tasks", methods=["GET"], endpoint="task_list")
    @login_required
    def task_list():
        tasks = container.task_service.list_tasks(
            current_role=current_role(),
            current_user_id=current_user_id(),
            org_id=current_org_id(),
            task_filter=_task_filter(),
        )
        return ok({"tasks": [task_to_dict(t) for t in tasks]})

    @app.route("/api/tasks", methods=["POST"], endpoint="task_create")
    @login_required
    def task_create():
        data = json_body()
        task = container.task_service.create_task(
            current_user_id=current_user_id(),
            org_id=current_org_id(),
            task_type=enum_value(TaskType, data.get("type"), "task type", TaskType.PERSONAL_TASK),
            title=data.get("title", ""),
            priority=enum_value(TaskPriority, data.get("priority"), "priority", TaskPriority.MODERATE),
            assignee_ids=data.get("assignee_ids") or [],
            description=data.get("description"),
            patient_id=data.get("patient_id"),
            due_date=body_datetime(data, "due_date", "Due date"),
            hours_to_complete=data.get("hours_to_complete"),
            location=data.get("location"),
            round_type=data.get("round_type"),
            follow_up_type=data.get("follow_up_type"),
            advisory_type=data.get("advisory_type"),
            contact_number=data.get("contact_number"),
            manual_whatsapp_number=data.get("manual_whatsapp_number"),
            status=enum_value(TaskStatus, data.get("status"), "status", TaskStatus.NEW),
        )
        return ok({"task": task_to_dict(task), "message": "Task created"}, 201)

    @app.route("/api/tasks/<int:task_id>", methods=["GET"], endpoint="task_get")
    @login_required
    def task_get(task_id: int):
        task = container.task_service.get_task(org_id=current_org_id(), task_id=task_id)
        return ok({"task": task_to_dict(task)})

    @app.route("/api/tasks/<int:task_id>", methods=["PUT"], endpoint="task_update")
    @login_required
    def task_update(task_id: int):
        data = json_body()
        changes = {k: data[k] for k in EDITABLE_TASK_FIELDS if k in data}
        if "due_date" in changes:
            changes["due_date"] = body_datetime(data, "due_date", "Due date")
        task = container.task_service.update_task(
            current_role=current_role(),
            current_user_id=current_user_id(),
            org_id=current_org_id(),
            task_id=task_id,
            changes=changes,
            assignee_ids=data.get("assignee_ids"),
        )
        return ok({"task": task_to_dict(task), "message": "Task updated"})

    @app.route("/api/tasks/<int:task_id>/status", methods=["POST"], endpoint="task_status")
    @login_required
    def task_status(task_id: int):
        status = enum_value(TaskStatus, json_body().get("status"), "status")
        if status is None:
            raise ValidationError("Status is required")
        task = container.task_service.change_status(
            current_role=current_role(),
            current_user_id=current_user_id(),
            org_id=current_org_id(),
            task_id=task_id,
            status=status,
        )
        return ok({"task": task_to_dict(task), "message": "Status updated"})

    @app.route("/api/tasks/bulk-delete", methods=["POST"], endpoint="task_bulk_delete")
    @admin_required
    def task_bulk_delete():
        deleted = container.task_service.delete_tasks(
            current_role=current_role(), org_id=current_org_id(), task_ids=json_body().get("task_ids") or []
        )
        return ok({"deleted": deleted, "message": f"{deleted} task(s) deleted"})

    @app.route("/api/tasks/dashboard", methods=["GET"], endpoint="task_dashboard")
    @login_required
    def task_dashboard():
        user_id = None if current_role().is_admin else current_user_id()
        counts = container.task_service.dashboard_counts(org_id=current_org_id(), user_id=user_id)
        return ok({"counts": counts})

    # -------- Quality control --------
    @app.route("/api/tasks/<int:task_id>/quality", methods=["GET"], endpoint="quality_list")
    @login_required
    def quality_list(task_id: int):
        entries = container.task_service.list_quality_entries(org_id=current_org_id(), task_id=task_id)
        return ok({"entries": [quality_entry_to_dict(e) for e in entries]})

    @app.route("/api/tasks/<int:task_id>/quality", methods=["POST"], endpoint="quality_add")
    @login_required
    def quality_add(task_id: int):
        data = json_body()
        entry_id = container.task_service.add_quality_entry(
            current_user_id=current_user_id(),
            org_id=current_org_id(),
            task_id=task_id,
            entry_date=body_date(data, "entry_date", "Entry date") or date.today(),
            description=data.get("description", ""),
            remark=data.get("remark"),
        )
        return ok({"entry_id": entry_id}, 201)

    # -------- Recurring templates --------
    @app.route("/api/recurring-templates", methods=["GET"], endpoint="template_list")
    @admin_required
    def template_list():
        templates = container.recurring_service.list_templates(org_id=current_org_id())
        return ok({"templates": [template_to_dict(t) for t in templates]})

    @app.route("/api/recurring-templates", methods=["POST"], endpoint="template_create")
    @admin_required
    def template_create():
        template_id = container.recurring_service.create_template(
            current_role=current_role(),
            org_id=current_org_id(),
            created_by=current_user_id(),
            **_template_payload(json_body()),
        )
        return ok({"template_id": template_id, "message": "Recurring task created"}, 201)

    @app.route("/api/recurring-templates/<int:template_id>", methods=["PUT"], endpoint="template_update")
    @admin_required
    def template_update(template_id: int):
        container.recurring_service.update_template(
            current_role=current_role(),
            org_id=current_org_id(),
            template_id=template_id,
            **_template_payload(json_body()),
        )
        return ok({"message": "Recurring task updated"})

    @app.route("/api/recurring-templates/<int:template_id>/active", methods=["POST"], endpoint="template_set_active")
    @admin_required
    def template_set_active(template_id: int):
        container.recurring_service.set_template_active(
            current_role=current_role(),
            org_id=current_org_id(),
            template_id=template_id,
            is_active=bool(json_body().get("is_active", True)),
        )
        return ok({"message": "Recurring task status updated"})

    @app.route("/api/recurring-templates/<int:template_id>", methods=["DELETE"], endpoint="template_delete")
    @admin_required
    def template_delete(template_id: int):
        container.recurring_service.delete_template(
            current_role=current_role(), org_id=current_org_id(), template_id=template_id
        )
        return ok({"message": "Recurring task deleted"})
