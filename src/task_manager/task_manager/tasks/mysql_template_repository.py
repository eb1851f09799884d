from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import RecurrenceFrequency, TaskPriority, TaskType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_float, db_cursor, dump_json, fetchall, fetchone, load_json
from .model import RecurringTemplate
from .repository import RecurringTemplateRepository

# Copied onto every generated task.
_DETAIL_COLUMNS = (
    "patient_id",
    "location",
    "round_type",
    "follow_up_type",
    "advisory_type",
    "contact_number",
    "manual_whatsapp_number",
    "hours_to_complete",
)

_COLUMNS = f"""
    template_id, org_id, title, description, task_type, priority, assignee_ids, created_by, frequency,
    start_date, end_date, number_of_occurrences, completion_within_hours, completion_within_days,
    last_generated_date, is_active, {", ".join(_DETAIL_COLUMNS)}
"""


def _row_to_template(r: dict) -> RecurringTemplate:
    return RecurringTemplate(
        template_id=int(r["template_id"]),
        org_id=int(r["org_id"]),
        title=r["title"],
        task_type=TaskType(r["task_type"]),
        priority=TaskPriority(r["priority"]),
        created_by=int(r["created_by"]),
        frequency=RecurrenceFrequency(r["frequency"]),
        start_date=r["start_date"],
        assignee_ids=tuple(int(u) for u in load_json(r.get("assignee_ids"), [])),
        description=r.get("description"),
        patient_id=r.get("patient_id"),
        location=r.get("location"),
        round_type=r.get("round_type"),
        follow_up_type=r.get("follow_up_type"),
        advisory_type=r.get("advisory_type"),
        contact_number=r.get("contact_number"),
        manual_whatsapp_number=r.get("manual_whatsapp_number"),
        hours_to_complete=as_float(r.get("hours_to_complete")),
        end_date=r.get("end_date"),
        number_of_occurrences=r.get("number_of_occurrences"),
        completion_within_hours=r.get("completion_within_hours"),
        completion_within_days=r.get("completion_within_days"),
        last_generated_date=r.get("last_generated_date"),
        is_active=as_bool(r.get("is_active"), True),
    )


class MySQLRecurringTemplateRepository(RecurringTemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, template_id: int) -> Optional[RecurringTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM recurring_task_templates WHERE template_id=%s", (int(template_id),))
            r = fetchone(cur)
            return _row_to_template(r) if r else None

    def list_for_org(self, org_id: int) -> Sequence[RecurringTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM recurring_task_templates WHERE org_id=%s ORDER BY created_at DESC",
                (int(org_id),),
            )
            return [_row_to_template(r) for r in fetchall(cur)]

    def list_active(self) -> Sequence[RecurringTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM recurring_task_templates WHERE is_active=1 ORDER BY template_id")
            return [_row_to_template(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO recurring_task_templates(org_id, title, description, task_type, priority, assignee_ids,
                                                     created_by, frequency, start_date, end_date,
                                                     number_of_occurrences, completion_within_hours,
                                                     completion_within_days, {", ".join(_DETAIL_COLUMNS)})
                VALUES({", ".join(["%s"] * (13 + len(_DETAIL_COLUMNS)))})
                """,
                (
                    int(org_id),
                    title,
                    description,
                    task_type.value,
                    priority.value,
                    dump_json([int(u) for u in assignee_ids]),
                    int(created_by),
                    frequency.value,
                    start_date,
                    end_date,
                    number_of_occurrences,
                    completion_within_hours,
                    completion_within_days,
                    patient_id,
                    location,
                    round_type,
                    follow_up_type,
                    advisory_type,
                    contact_number,
                    manual_whatsapp_number,
                    hours_to_complete,
                ),
            )
            return int(cur.lastrowid)

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE recurring_task_templates
                SET title=%s, description=%s, task_type=%s, priority=%s, assignee_ids=%s, frequency=%s,
                    start_date=%s, end_date=%s, number_of_occurrences=%s,
                    completion_within_hours=%s, completion_within_days=%s,
                    {", ".join(f"{c}=%s" for c in _DETAIL_COLUMNS)}
                WHERE template_id=%s
                """,
                (
                    title,
                    description,
                    task_type.value,
                    priority.value,
                    dump_json([int(u) for u in assignee_ids]),
                    frequency.value,
                    start_date,
                    end_date,
                    number_of_occurrences,
                    completion_within_hours,
                    completion_within_days,
                    patient_id,
                    location,
                    round_type,
                    follow_up_type,
                    advisory_type,
                    contact_number,
                    manual_whatsapp_number,
                    hours_to_complete,
                    int(template_id),
                ),
            )
            return cur.rowcount > 0

    def set_active(self, template_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE recurring_task_templates SET is_active=%s WHERE template_id=%s",
                (int(is_active), int(template_id)),
            )
            return cur.rowcount > 0

    def mark_generated(self, template_id: int, *, generated_for: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE recurring_task_templates SET last_generated_date=%s WHERE template_id=%s",
                (generated_for, int(template_id)),
            )
            return cur.rowcount > 0

    def delete(self, template_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM recurring_task_templates WHERE template_id=%s", (int(template_id),))
            return cur.rowcount > 0
