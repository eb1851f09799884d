from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import NotificationType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, placeholders
from .model import Notification, PendingWhatsApp
from .repository import NotificationRepository

_COLUMNS = """
    n.notification_id, n.user_id, n.task_id, n.notification_type, n.title, n.message,
    n.whatsapp_number, n.whatsapp_message, n.scheduled_for, n.is_read,
    n.whatsapp_sent, n.whatsapp_sent_at, n.whatsapp_message_id, n.whatsapp_error, n.created_at
"""


def _row_to_notification(r: dict) -> Notification:
    return Notification(
        notification_id=int(r["notification_id"]),
        user_id=int(r["user_id"]),
        task_id=r.get("task_id"),
        notification_type=NotificationType(r["notification_type"]),
        title=r["title"],
        message=r["message"],
        whatsapp_number=r.get("whatsapp_number"),
        whatsapp_message=r.get("whatsapp_message"),
        scheduled_for=r.get("scheduled_for"),
        is_read=as_bool(r.get("is_read")),
        whatsapp_sent=as_bool(r.get("whatsapp_sent")),
        whatsapp_sent_at=r.get("whatsapp_sent_at"),
        whatsapp_message_id=r.get("whatsapp_message_id"),
        whatsapp_error=r.get("whatsapp_error"),
        created_at=r["created_at"],
    )


def _due_clauses(now: datetime, type_values: Sequence[str]) -> tuple[list[str], list[object]]:
    clauses = [
        "n.whatsapp_sent=0",
        "n.whatsapp_number IS NOT NULL",
        "n.whatsapp_message IS NOT NULL",
        "(n.scheduled_for IS NULL OR n.scheduled_for <= %s)",
        f"n.notification_type IN ({placeholders(type_values)})",
    ]
    return clauses, [now, *type_values]


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        task_id: Optional[int] = None,
        whatsapp_number: Optional[str] = None,
        whatsapp_message: Optional[str] = None,
        scheduled_for: Optional[datetime] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(user_id, task_id, notification_type, title, message,
                                          whatsapp_number, whatsapp_message, scheduled_for)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    task_id,
                    notification_type.value,
                    title,
                    message,
                    whatsapp_number,
                    whatsapp_message,
                    scheduled_for,
                ),
            )
            return int(cur.lastrowid)

    def list_for_user(self, user_id: int, *, unread_only: bool = False, limit: int = 50) -> Sequence[Notification]:
        sql = f"SELECT {_COLUMNS} FROM notifications n WHERE n.user_id=%s"
        if unread_only:
            sql += " AND n.is_read=0"
        sql += " ORDER BY n.created_at DESC LIMIT %s"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (int(user_id), int(limit)))
            return [_row_to_notification(r) for r in fetchall(cur)]

    def mark_read(self, user_id: int, notification_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE notifications SET is_read=1 WHERE notification_id=%s AND user_id=%s",
                (int(notification_id), int(user_id)),
            )
            return cur.rowcount > 0

    def mark_all_read(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE notifications SET is_read=1 WHERE user_id=%s AND is_read=0", (int(user_id),))
            return int(cur.rowcount)

    def unread_count(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM notifications WHERE user_id=%s AND is_read=0",
                (int(user_id),),
            )
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def list_pending_whatsapp(
        self,
        *,
        now: datetime,
        types: Sequence[NotificationType],
        limit: int,
        org_id: Optional[int] = None,
        deliverable_only: bool = False,
    ) -> Sequence[PendingWhatsApp]:
        type_values = [t.value for t in types]
        if not type_values:
            return []

        clauses, params = _due_clauses(now, type_values)
        if deliverable_only:
            clauses.append("o.whatsapp_enabled=1")
        if org_id is not None:
            clauses.append("u.org_id=%s")
            params.append(int(org_id))
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT n.notification_id, n.user_id, n.notification_type, n.title,
                       n.whatsapp_number, n.whatsapp_message, n.created_at, n.task_id,
                       u.full_name, o.org_id, o.whatsapp_enabled, o.whatsapp_endpoint,
                       t.title AS task_title, t.priority AS task_priority, t.due_date AS task_due_date
                FROM notifications n
                LEFT JOIN users u ON u.user_id = n.user_id
                LEFT JOIN organizations o ON o.org_id = u.org_id
                LEFT JOIN tasks t ON t.task_id = n.task_id
                WHERE {" AND ".join(clauses)}
                ORDER BY n.created_at ASC
                LIMIT %s
                """,
                tuple(params),
            )
            return [
                PendingWhatsApp(
                    notification_id=int(r["notification_id"]),
                    user_id=int(r["user_id"]),
                    notification_type=NotificationType(r["notification_type"]),
                    title=r["title"],
                    whatsapp_number=r["whatsapp_number"],
                    whatsapp_message=r["whatsapp_message"],
                    created_at=r["created_at"],
                    org_id=r.get("org_id"),
                    whatsapp_enabled=as_bool(r["whatsapp_enabled"]) if r.get("whatsapp_enabled") is not None else None,
                    whatsapp_endpoint=r.get("whatsapp_endpoint"),
                    full_name=r.get("full_name"),
                    task_id=r.get("task_id"),
                    task_title=r.get("task_title"),
                    task_priority=r.get("task_priority"),
                    task_due_date=r.get("task_due_date"),
                )
                for r in fetchall(cur)
            ]

    def count_held_whatsapp(self, *, now: datetime, types: Sequence[NotificationType]) -> int:
        type_values = [t.value for t in types]
        if not type_values:
            return 0

        clauses, params = _due_clauses(now, type_values)
        clauses.append("(o.org_id IS NULL OR o.whatsapp_enabled=0)")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS cnt
                FROM notifications n
                LEFT JOIN users u ON u.user_id = n.user_id
                LEFT JOIN organizations o ON o.org_id = u.org_id
                WHERE {" AND ".join(clauses)}
                """,
                tuple(params),
            )
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def mark_whatsapp_sent(self, notification_id: int, *, message_id: Optional[str], at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE notifications
                SET whatsapp_sent=1, whatsapp_sent_at=%s, whatsapp_message_id=%s, whatsapp_error=NULL
                WHERE notification_id=%s
                """,
                (at, message_id, int(notification_id)),
            )
            return cur.rowcount > 0

    def mark_whatsapp_failed(self, notification_id: int, *, error: str, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE notifications
                SET whatsapp_sent=1, whatsapp_sent_at=%s, whatsapp_error=%s
                WHERE notification_id=%s
                """,
                (at, error[:500], int(notification_id)),
            )
            return cur.rowcount > 0

    def whatsapp_counts(self, org_id: int) -> dict:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(n.whatsapp_sent=1 AND n.whatsapp_error IS NULL), 0) AS sent,
                    COALESCE(SUM(n.whatsapp_sent=1 AND n.whatsapp_error IS NOT NULL), 0) AS failed,
                    COALESCE(SUM(n.whatsapp_sent=0), 0) AS pending
                FROM notifications n
                JOIN users u ON u.user_id = n.user_id
                WHERE u.org_id=%s AND n.whatsapp_number IS NOT NULL
                """,
                (int(org_id),),
            )
            row = fetchone(cur) or {}
            return {
                "total": int(row.get("total") or 0),
                "sent": int(row.get("sent") or 0),
                "failed": int(row.get("failed") or 0),
                "pending": int(row.get("pending") or 0),
            }
