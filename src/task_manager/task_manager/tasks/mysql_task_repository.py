from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import TaskPriority, TaskStatus, TaskType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone, placeholders
from .model import QualityControlEntry, Task
from .repository import EDITABLE_TASK_FIELDS, TaskRepository

_COLUMNS = """
    t.task_id, t.org_id, t.task_type, t.title, t.description, t.patient_id, t.priority, t.status,
    t.created_by, t.created_at, t.updated_at, t.due_date, t.completed_at, t.location,
    t.round_type, t.follow_up_type, t.advisory_type, t.contact_number, t.manual_whatsapp_number,
    t.hours_to_complete, t.recurring_template_id, t.overdue_alert_count, t.last_overdue_alert_at
"""


def _row_to_task(r: dict, assignee_ids: Sequence[int]) -> Task:
    return Task(
        task_id=int(r["task_id"]),
        org_id=int(r["org_id"]),
        task_type=TaskType(r["task_type"]),
        title=r["title"],
        priority=TaskPriority(r["priority"]),
        status=TaskStatus(r["status"]),
        created_by=int(r["created_by"]),
        created_at=r["created_at"],
        assignee_ids=tuple(assignee_ids),
        description=r.get("description"),
        patient_id=r.get("patient_id"),
        updated_at=r.get("updated_at"),
        due_date=r.get("due_date"),
        completed_at=r.get("completed_at"),
        location=r.get("location"),
        round_type=r.get("round_type"),
        follow_up_type=r.get("follow_up_type"),
        advisory_type=r.get("advisory_type"),
        contact_number=r.get("contact_number"),
        manual_whatsapp_number=r.get("manual_whatsapp_number"),
        hours_to_complete=as_float(r.get("hours_to_complete")),
        recurring_template_id=r.get("recurring_template_id"),
        overdue_alert_count=int(r.get("overdue_alert_count") or 0),
        last_overdue_alert_at=r.get("last_overdue_alert_at"),
    )


def _load_assignees(cur, task_ids: Sequence[int]) -> dict[int, list[int]]:
    out: dict[int, list[int]] = {int(tid): [] for tid in task_ids}
    if not task_ids:
        return out
    cur.execute(
        f"SELECT task_id, user_id FROM task_assignees WHERE task_id IN ({placeholders(task_ids)}) ORDER BY user_id",
        tuple(int(t) for t in task_ids),
    )
    for r in fetchall(cur):
        out.setdefault(int(r["task_id"]), []).append(int(r["user_id"]))
    return out


def _rows_to_tasks(cur, rows: list[dict]) -> list[Task]:
    assignees = _load_assignees(cur, [int(r["task_id"]) for r in rows])
    return [_row_to_task(r, assignees.get(int(r["task_id"]), [])) for r in rows]


class MySQLTaskRepository(TaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, task_id: int) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM tasks t WHERE t.task_id=%s", (int(task_id),))
            r = fetchone(cur)
            if not r:
                return None
            return _rows_to_tasks(cur, [r])[0]

    def list_for_org(self, org_id: int, *, involving_user_id: Optional[int] = None) -> Sequence[Task]:
        sql = f"SELECT {_COLUMNS} FROM tasks t WHERE t.org_id=%s"
        params: list[object] = [int(org_id)]
        if involving_user_id is not None:
            sql += """
                AND (t.created_by=%s
                     OR EXISTS (SELECT 1 FROM task_assignees ta WHERE ta.task_id=t.task_id AND ta.user_id=%s))
            """
            params += [int(involving_user_id), int(involving_user_id)]
        sql += " ORDER BY t.created_at DESC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return _rows_to_tasks(cur, fetchall(cur))

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tasks(org_id, task_type, title, description, patient_id, priority, status,
                                  created_by, created_at, due_date, location, round_type, follow_up_type,
                                  advisory_type, contact_number, manual_whatsapp_number, hours_to_complete,
                                  recurring_template_id)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(org_id),
                    task_type.value,
                    title,
                    description,
                    patient_id,
                    priority.value,
                    status.value,
                    int(created_by),
                    created_at,
                    due_date,
                    location,
                    round_type,
                    follow_up_type,
                    advisory_type,
                    contact_number,
                    manual_whatsapp_number,
                    hours_to_complete,
                    recurring_template_id,
                ),
            )
            task_id = int(cur.lastrowid)
            if assignee_ids:
                cur.executemany(
                    "INSERT INTO task_assignees(task_id, user_id) VALUES(%s,%s)",
                    [(task_id, int(uid)) for uid in assignee_ids],
                )
            return task_id

    def update_task(self, task_id: int, *, changes: Mapping[str, Any], updated_at: datetime) -> bool:
        fields = {k: v for k, v in changes.items() if k in EDITABLE_TASK_FIELDS}
        if not fields:
            return False
        values = [v.value if isinstance(v, TaskPriority) else v for v in fields.values()]
        assignments = ", ".join(f"{k}=%s" for k in fields)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE tasks SET {assignments}, updated_at=%s WHERE task_id=%s",
                (*values, updated_at, int(task_id)),
            )
            return cur.rowcount > 0

    def set_assignees(self, task_id: int, user_ids: Sequence[int]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM task_assignees WHERE task_id=%s", (int(task_id),))
            if user_ids:
                cur.executemany(
                    "INSERT INTO task_assignees(task_id, user_id) VALUES(%s,%s)",
                    [(int(task_id), int(uid)) for uid in user_ids],
                )

    def set_status(
        self,
        task_id: int,
        *,
        status: TaskStatus,
        completed_at: Optional[datetime],
        updated_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE tasks SET status=%s, completed_at=%s, updated_at=%s WHERE task_id=%s",
                (status.value, completed_at, updated_at, int(task_id)),
            )
            return cur.rowcount > 0

    def delete_many(self, org_id: int, task_ids: Sequence[int]) -> int:
        if not task_ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"DELETE FROM tasks WHERE org_id=%s AND task_id IN ({placeholders(task_ids)})",
                (int(org_id), *[int(t) for t in task_ids]),
            )
            return int(cur.rowcount)

    def list_overdue(self, *, now: datetime) -> Sequence[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM tasks t
                WHERE t.status <> %s AND t.due_date IS NOT NULL AND t.due_date < %s
                ORDER BY t.due_date
                """,
                (TaskStatus.COMPLETED.value, now),
            )
            return _rows_to_tasks(cur, fetchall(cur))

    def record_overdue_alert(self, task_id: int, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE tasks
                SET overdue_alert_count = overdue_alert_count + 1, last_overdue_alert_at=%s
                WHERE task_id=%s
                """,
                (at, int(task_id)),
            )
            return cur.rowcount > 0

    def count_for_template(self, template_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM tasks WHERE recurring_template_id=%s",
                (int(template_id),),
            )
            r = fetchone(cur)
            return int(r["cnt"]) if r else 0

    def add_quality_entry(
        self,
        *,
        task_id: int,
        user_id: int,
        entry_date: date,
        description: str,
        remark: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO quality_control_entries(task_id, user_id, entry_date, description, remark)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(task_id), int(user_id), entry_date, description, remark),
            )
            return int(cur.lastrowid)

    def list_quality_entries(self, task_id: int) -> Sequence[QualityControlEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT entry_id, task_id, user_id, entry_date, description, remark, created_at
                FROM quality_control_entries
                WHERE task_id=%s
                ORDER BY entry_date DESC, entry_id DESC
                """,
                (int(task_id),),
            )
            return [
                QualityControlEntry(
                    entry_id=int(r["entry_id"]),
                    task_id=int(r["task_id"]),
                    user_id=int(r["user_id"]),
                    entry_date=r["entry_date"],
                    description=r["description"],
                    remark=r.get("remark"),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
