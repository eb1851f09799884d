from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Sequence

from ..core.enums import LeaveType, RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import LeaveRequest, RegularizationRequest
from .repository import LeaveRepository


def _hhmm(value) -> str:
    t = normalize_mysql_time(value)
    return t.strftime("%H:%M") if t else "-"


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Leave requests --------
    def create_leave(
        self,
        *,
        user_id: int,
        org_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: Optional[date],
        reason: str,
        is_emergency: bool,
        is_post_facto: bool,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(user_id, org_id, leave_type, start_date, end_date, reason,
                                           is_emergency, is_post_facto, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    int(org_id),
                    leave_type.value,
                    start_date,
                    end_date,
                    reason,
                    int(is_emergency),
                    int(is_post_facto),
                    RequestStatus.PENDING.value,
                ),
            )
            return int(cur.lastrowid)

    def set_approval_task(self, request_id: int, task_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE leave_requests SET approval_task_id=%s WHERE request_id=%s",
                (int(task_id), int(request_id)),
            )
            return cur.rowcount > 0

    def get_leave(self, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT request_id, user_id, org_id, leave_type, start_date, end_date, reason,
                       is_emergency, is_post_facto, approval_task_id, status, created_at,
                       decided_by, decided_at, admin_note
                FROM leave_requests
                WHERE request_id=%s
                """,
                (int(request_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return LeaveRequest(
                request_id=int(r["request_id"]),
                user_id=int(r["user_id"]),
                org_id=int(r["org_id"]),
                leave_type=LeaveType(r["leave_type"]),
                start_date=r["start_date"],
                end_date=r.get("end_date"),
                reason=r["reason"],
                is_emergency=as_bool(r.get("is_emergency")),
                is_post_facto=as_bool(r.get("is_post_facto")),
                approval_task_id=r.get("approval_task_id"),
                status=RequestStatus(r["status"]),
                created_at=r["created_at"],
                decided_by=r.get("decided_by"),
                decided_at=r.get("decided_at"),
                admin_note=r.get("admin_note"),
            )

    def list_leaves(
        self,
        *,
        org_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        limit: int = 200,
    ) -> Sequence[dict]:
        clauses = ["1=1"]
        params: list[object] = []
        if org_id is not None:
            clauses.append("r.org_id=%s")
            params.append(int(org_id))
        if user_id is not None:
            clauses.append("r.user_id=%s")
            params.append(int(user_id))
        if status is not None:
            clauses.append("r.status=%s")
            params.append(status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT r.request_id, r.user_id, u.full_name, u.department, r.leave_type,
                       r.start_date, r.end_date, r.reason, r.is_emergency, r.is_post_facto,
                       r.approval_task_id, r.status, r.created_at, r.admin_note
                FROM leave_requests r
                JOIN users u ON u.user_id = r.user_id
                WHERE {" AND ".join(clauses)}
                ORDER BY r.created_at DESC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return [
                {
                    "request_id": int(r["request_id"]),
                    "user_id": int(r["user_id"]),
                    "full_name": r["full_name"],
                    "department": r.get("department") or "-",
                    "leave_type": r["leave_type"],
                    "start_date": r["start_date"].strftime("%Y-%m-%d"),
                    "end_date": r["end_date"].strftime("%Y-%m-%d") if r.get("end_date") else None,
                    "reason": r["reason"],
                    "is_emergency": as_bool(r.get("is_emergency")),
                    "is_post_facto": as_bool(r.get("is_post_facto")),
                    "approval_task_id": r.get("approval_task_id"),
                    "status": r["status"],
                    "created_at": r["created_at"].strftime("%Y-%m-%d %H:%M"),
                    "admin_note": r.get("admin_note") or "",
                }
                for r in fetchall(cur)
            ]

    def decide_leave(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: int,
        decided_at: datetime,
        admin_note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, decided_by=%s, decided_at=%s, admin_note=%s
                WHERE request_id=%s AND status=%s
                """,
                (status.value, int(decided_by), decided_at, admin_note, int(request_id), RequestStatus.PENDING.value),
            )
            return cur.rowcount > 0

    # -------- Regularization --------
    def create_regularization(
        self,
        *,
        attendance_id: int,
        user_id: int,
        requested_punch_in: Optional[time],
        requested_punch_out: Optional[time],
        reason: str,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO regularization_requests(attendance_id, user_id, requested_punch_in,
                                                    requested_punch_out, reason, status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(attendance_id),
                    int(user_id),
                    requested_punch_in,
                    requested_punch_out,
                    reason,
                    RequestStatus.PENDING.value,
                ),
            )
            return int(cur.lastrowid)

    def get_regularization(self, request_id: int) -> Optional[RegularizationRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT request_id, attendance_id, user_id, requested_punch_in, requested_punch_out, reason,
                       status, created_at, decided_by, decided_at, admin_note
                FROM regularization_requests
                WHERE request_id=%s
                """,
                (int(request_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return RegularizationRequest(
                request_id=int(r["request_id"]),
                attendance_id=int(r["attendance_id"]),
                user_id=int(r["user_id"]),
                reason=r["reason"],
                status=RequestStatus(r["status"]),
                created_at=r["created_at"],
                requested_punch_in=normalize_mysql_time(r.get("requested_punch_in")),
                requested_punch_out=normalize_mysql_time(r.get("requested_punch_out")),
                decided_by=r.get("decided_by"),
                decided_at=r.get("decided_at"),
                admin_note=r.get("admin_note"),
            )

    def has_pending_regularization(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM regularization_requests WHERE attendance_id=%s AND status=%s LIMIT 1",
                (int(attendance_id), RequestStatus.PENDING.value),
            )
            return fetchone(cur) is not None

    def list_regularizations(
        self,
        *,
        org_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        limit: int = 200,
    ) -> Sequence[dict]:
        clauses = ["1=1"]
        params: list[object] = []
        if org_id is not None:
            clauses.append("u.org_id=%s")
            params.append(int(org_id))
        if user_id is not None:
            clauses.append("r.user_id=%s")
            params.append(int(user_id))
        if status is not None:
            clauses.append("r.status=%s")
            params.append(status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT r.request_id, r.attendance_id, r.user_id, u.full_name, a.work_date,
                       a.punch_in_time, a.punch_out_time, r.requested_punch_in, r.requested_punch_out,
                       r.reason, r.status, r.created_at, r.admin_note
                FROM regularization_requests r
                JOIN users u ON u.user_id = r.user_id
                JOIN attendance_records a ON a.attendance_id = r.attendance_id
                WHERE {" AND ".join(clauses)}
                ORDER BY r.created_at DESC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return [
                {
                    "request_id": int(r["request_id"]),
                    "attendance_id": int(r["attendance_id"]),
                    "user_id": int(r["user_id"]),
                    "full_name": r["full_name"],
                    "work_date": r["work_date"].strftime("%Y-%m-%d"),
                    "punch_in": r["punch_in_time"].strftime("%H:%M") if r.get("punch_in_time") else "-",
                    "punch_out": r["punch_out_time"].strftime("%H:%M") if r.get("punch_out_time") else "-",
                    "requested_punch_in": _hhmm(r.get("requested_punch_in")),
                    "requested_punch_out": _hhmm(r.get("requested_punch_out")),
                    "reason": r["reason"],
                    "status": r["status"],
                    "created_at": r["created_at"].strftime("%Y-%m-%d %H:%M"),
                    "admin_note": r.get("admin_note") or "",
                }
                for r in fetchall(cur)
            ]

    def decide_regularization(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: int,
        decided_at: datetime,
        admin_note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE regularization_requests
                SET status=%s, decided_by=%s, decided_at=%s, admin_note=%s
                WHERE request_id=%s AND status=%s
                """,
                (status.value, int(decided_by), decided_at, admin_note, int(request_id), RequestStatus.PENDING.value),
            )
            return cur.rowcount > 0
