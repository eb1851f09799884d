from __future__ import annotations

from datetime import date, time
from typing import Optional, Sequence

from ..core.constants import DEFAULT_WEEKLY_OFF_DAYS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, dump_json, fetchall, fetchone, load_json, normalize_mysql_time
from .model import EmployeeShift, Shift
from .repository import ShiftRepository

_SHIFT_COLUMNS = """
    shift_id, org_id, shift_name, start_time, end_time, break_minutes,
    late_threshold_minutes, early_out_threshold_minutes, weekly_off_days, is_overnight, is_active
"""


def _row_to_shift(r: dict) -> Shift:
    return Shift(
        shift_id=int(r["shift_id"]),
        org_id=int(r["org_id"]),
        shift_name=r["shift_name"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        break_minutes=int(r.get("break_minutes") or 0),
        late_threshold_minutes=int(r.get("late_threshold_minutes") or 0),
        early_out_threshold_minutes=int(r.get("early_out_threshold_minutes") or 0),
        weekly_off_days=tuple(load_json(r.get("weekly_off_days"), list(DEFAULT_WEEKLY_OFF_DAYS))),
        is_overnight=as_bool(r.get("is_overnight")),
        is_active=as_bool(r.get("is_active"), True),
    )


def _row_to_assignment(r: dict) -> EmployeeShift:
    return EmployeeShift(
        assignment_id=int(r["assignment_id"]),
        user_id=int(r["user_id"]),
        shift_id=int(r["shift_id"]),
        effective_from=r["effective_from"],
        effective_to=r.get("effective_to"),
        assigned_by=r.get("assigned_by"),
    )


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_org(self, org_id: int, *, active_only: bool = True) -> Sequence[Shift]:
        sql = f"SELECT {_SHIFT_COLUMNS} FROM shifts WHERE org_id=%s"
        if active_only:
            sql += " AND is_active=1"
        sql += " ORDER BY shift_name"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (int(org_id),))
            return [_row_to_shift(r) for r in fetchall(cur)]

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SHIFT_COLUMNS} FROM shifts WHERE shift_id=%s", (int(shift_id),))
            r = fetchone(cur)
            return _row_to_shift(r) if r else None

    def create_shift(
        self,
        *,
        org_id: int,
        shift_name: str,
        start_time: time,
        end_time: time,
        break_minutes: int,
        late_threshold_minutes: int,
        early_out_threshold_minutes: int,
        weekly_off_days: Sequence[str],
        is_overnight: bool,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO shifts(org_id, shift_name, start_time, end_time, break_minutes,
                                   late_threshold_minutes, early_out_threshold_minutes, weekly_off_days, is_overnight)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(org_id),
                    shift_name,
                    start_time,
                    end_time,
                    int(break_minutes),
                    int(late_threshold_minutes),
                    int(early_out_threshold_minutes),
                    dump_json(list(weekly_off_days)),
                    int(is_overnight),
                ),
            )
            return int(cur.lastrowid)

    def update_shift(
        self,
        shift_id: int,
        *,
        shift_name: str,
        start_time: time,
        end_time: time,
        break_minutes: int,
        late_threshold_minutes: int,
        early_out_threshold_minutes: int,
        weekly_off_days: Sequence[str],
        is_overnight: bool,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE shifts
                SET shift_name=%s, start_time=%s, end_time=%s, break_minutes=%s,
                    late_threshold_minutes=%s, early_out_threshold_minutes=%s, weekly_off_days=%s, is_overnight=%s
                WHERE shift_id=%s
                """,
                (
                    shift_name,
                    start_time,
                    end_time,
                    int(break_minutes),
                    int(late_threshold_minutes),
                    int(early_out_threshold_minutes),
                    dump_json(list(weekly_off_days)),
                    int(is_overnight),
                    int(shift_id),
                ),
            )
            return cur.rowcount > 0

    def set_active(self, shift_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE shifts SET is_active=%s WHERE shift_id=%s", (int(is_active), int(shift_id)))
            return cur.rowcount > 0

    def list_assignments(self, user_id: int) -> Sequence[EmployeeShift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT assignment_id, user_id, shift_id, effective_from, effective_to, assigned_by
                FROM employee_shifts
                WHERE user_id=%s
                ORDER BY effective_from DESC
                """,
                (int(user_id),),
            )
            return [_row_to_assignment(r) for r in fetchall(cur)]

    def list_org_assignments(self, org_id: int, *, on_date: date) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT es.assignment_id, es.user_id, u.full_name, u.department,
                       es.shift_id, s.shift_name, s.start_time, s.end_time,
                       es.effective_from, es.effective_to
                FROM employee_shifts es
                JOIN users u ON u.user_id = es.user_id
                JOIN shifts s ON s.shift_id = es.shift_id
                WHERE u.org_id=%s
                  AND es.effective_from <= %s
                  AND (es.effective_to IS NULL OR es.effective_to >= %s)
                ORDER BY u.full_name
                """,
                (int(org_id), on_date, on_date),
            )
            out: list[dict] = []
            for r in fetchall(cur):
                start = normalize_mysql_time(r["start_time"])
                end = normalize_mysql_time(r["end_time"])
                out.append(
                    {
                        "assignment_id": int(r["assignment_id"]),
                        "user_id": int(r["user_id"]),
                        "full_name": r["full_name"],
                        "department": r.get("department") or "-",
                        "shift_id": int(r["shift_id"]),
                        "shift": f"{r['shift_name']} ({start.strftime('%H:%M')}-{end.strftime('%H:%M')})",
                        "effective_from": r["effective_from"].strftime("%Y-%m-%d"),
                        "effective_to": r["effective_to"].strftime("%Y-%m-%d") if r.get("effective_to") else None,
                    }
                )
            return out

    def close_open_assignments(self, user_id: int, *, effective_to: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_shifts
                SET effective_to=%s
                WHERE user_id=%s AND (effective_to IS NULL OR effective_to > %s)
                """,
                (effective_to, int(user_id), effective_to),
            )
            return int(cur.rowcount)

    def create_assignment(
        self,
        *,
        user_id: int,
        shift_id: int,
        effective_from: date,
        effective_to: Optional[date],
        assigned_by: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_shifts(user_id, shift_id, effective_from, effective_to, assigned_by)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(user_id), int(shift_id), effective_from, effective_to, assigned_by),
            )
            return int(cur.lastrowid)

    def get_assignment_for_date(self, user_id: int, on_date: date) -> Optional[EmployeeShift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT assignment_id, user_id, shift_id, effective_from, effective_to, assigned_by
                FROM employee_shifts
                WHERE user_id=%s
                  AND effective_from <= %s
                  AND (effective_to IS NULL OR effective_to >= %s)
                ORDER BY effective_from DESC
                LIMIT 1
                """,
                (int(user_id), on_date, on_date),
            )
            r = fetchone(cur)
            return _row_to_assignment(r) if r else None
