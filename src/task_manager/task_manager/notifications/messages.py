"""WhatsApp/in-app message templates."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

PRIORITY_LABELS = {
    "critical": "Critical",
    "moderate": "Moderate",
    "lessImportant": "Less Important",
}


def _due(due_date: Optional[datetime]) -> str:
    return due_date.strftime("%d %b %Y %H:%M") if due_date else "No due date"


def _priority(priority: str) -> str:
    return PRIORITY_LABELS.get(priority, priority)


def task_assigned_message(
    *,
    assignee_name: str,
    title: str,
    priority: str,
    due_date: Optional[datetime],
    description: Optional[str] = None,
    patient_id: Optional[str] = None,
    urgent: bool = False,
) -> str:
    header = "🚨 URGENT TASK" if urgent else "📋 New Task Assigned"
    lines = [
        f"Hi {assignee_name},",
        "",
        header,
        "",
        f"📝 Task: {title}",
        f"🔴 Priority: {_priority(priority)}",
        f"⏰ Due: {_due(due_date)}",
    ]
    if patient_id:
        lines.append(f"🧾 Patient ID: {patient_id}")
    if description:
        lines += ["", description]
    lines += ["", "Please check the Task Manager for details.", "", "Thanks!"]
    return "\n".join(lines)


def task_updated_message(*, assignee_name: str, title: str, status: str, due_date: Optional[datetime]) -> str:
    return "\n".join(
        [
            f"Hi {assignee_name},",
            "",
            f"✏️ Task updated: {title}",
            f"Status: {status}",
            f"⏰ Due: {_due(due_date)}",
        ]
    )


def task_completed_message(*, creator_name: str, title: str, completed_by: str) -> str:
    return f"Hi {creator_name},\n\n✅ Task completed: {title}\nCompleted by: {completed_by}"


def task_reminder_message(*, assignee_name: str, title: str, due_date: Optional[datetime]) -> str:
    return f"Hi {assignee_name},\n\n⏰ Reminder: {title} is due on {_due(due_date)}."


def overdue_alert_message(
    *,
    assignee_name: str,
    title: str,
    priority: str,
    hours_overdue: int,
    due_date: datetime,
    description: Optional[str] = None,
    alert_number: int = 1,
) -> str:
    lines = [
        f"Hi {assignee_name},",
        "",
        f"⚠️ URGENT: OVERDUE TASK (alert #{alert_number})",
        "",
        f"📝 Task: {title}",
        f"🔴 Priority: {_priority(priority)}",
        f"⏰ Overdue by: {hours_overdue} hours",
        f"🕒 Was due: {_due(due_date)}",
    ]
    if description:
        lines += ["", description]
    lines += [
        "",
        "This task is now OVERDUE. Please complete it immediately or contact your supervisor.",
        "",
        "Thanks!",
    ]
    return "\n".join(lines)


def leave_request_admin_message(
    *,
    admin_name: str,
    employee_name: str,
    leave_type: str,
    start_date: date,
    end_date: Optional[date],
    reason: str,
    is_emergency: bool,
    is_post_facto: bool,
) -> str:
    period = start_date.strftime("%d %b %Y")
    if end_date and end_date != start_date:
        period += f" to {end_date.strftime('%d %b %Y')}"

    flags = []
    if is_emergency:
        flags.append("🚨 EMERGENCY")
    if is_post_facto:
        flags.append("📅 POST FACTO")

    lines = [
        f"Hi {admin_name},",
        "",
        "📝 New Leave Request",
        "",
        f"👤 Employee: {employee_name}",
        f"🏷️ Type: {leave_type.upper()}",
        f"📆 Period: {period}",
        f"💬 Reason: {reason}",
    ]
    if flags:
        lines.append(" ".join(flags))
    lines += ["", "Please review it in the Task Manager."]
    return "\n".join(lines)


def leave_decision_message(
    *,
    employee_name: str,
    leave_type: str,
    start_date: date,
    approved: bool,
    admin_note: Optional[str] = None,
) -> str:
    verdict = "✅ APPROVED" if approved else "❌ REJECTED"
    lines = [
        f"Hi {employee_name},",
        "",
        f"Your {leave_type} leave from {start_date.strftime('%d %b %Y')} has been {verdict}.",
    ]
    if admin_note:
        lines += ["", f"Remarks: {admin_note}"]
    return "\n".join(lines)


def connectivity_test_message(*, org_name: str, now: datetime) -> str:
    return (
        f"✅ WhatsApp connectivity test from {org_name}.\n"
        f"Sent at {now.strftime('%d %b %Y %H:%M')}. If you received this, notifications are working."
    )
