from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_float, db_cursor, fetchall, fetchone
from .model import AttendanceRecord, AttendanceReportRow, PunchLocation
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    ar.attendance_id, ar.user_id, ar.org_id, ar.work_date, ar.shift_id, ar.status,
    ar.punch_in_time, ar.punch_out_time,
    ar.punch_in_latitude, ar.punch_in_longitude, ar.punch_in_address, ar.punch_in_distance,
    ar.punch_out_latitude, ar.punch_out_longitude, ar.punch_out_address, ar.punch_out_distance,
    ar.device_info, ar.is_outside_geofence,
    ar.geofence_override_by, ar.geofence_override_reason, ar.geofence_override_at,
    ar.total_hours, ar.break_hours, ar.effective_hours,
    ar.is_late, ar.is_early_out, ar.is_half_day, ar.is_weekend, ar.is_holiday,
    ar.is_regularized, ar.regularized_by, ar.regularized_reason, ar.regularized_at
"""


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        org_id=int(r["org_id"]),
        work_date=r["work_date"],
        shift_id=r.get("shift_id"),
        status=AttendanceStatus(r["status"]),
        punch_in_time=r["punch_in_time"],
        punch_out_time=r.get("punch_out_time"),
        punch_in_latitude=as_float(r.get("punch_in_latitude")),
        punch_in_longitude=as_float(r.get("punch_in_longitude")),
        punch_in_address=r.get("punch_in_address"),
        punch_in_distance=as_float(r.get("punch_in_distance")),
        punch_out_latitude=as_float(r.get("punch_out_latitude")),
        punch_out_longitude=as_float(r.get("punch_out_longitude")),
        punch_out_address=r.get("punch_out_address"),
        punch_out_distance=as_float(r.get("punch_out_distance")),
        device_info=r.get("device_info"),
        is_outside_geofence=as_bool(r.get("is_outside_geofence")),
        geofence_override_by=r.get("geofence_override_by"),
        geofence_override_reason=r.get("geofence_override_reason"),
        geofence_override_at=r.get("geofence_override_at"),
        total_hours=as_float(r.get("total_hours")),
        break_hours=as_float(r.get("break_hours")),
        effective_hours=as_float(r.get("effective_hours")),
        is_late=as_bool(r.get("is_late")),
        is_early_out=as_bool(r.get("is_early_out")),
        is_half_day=as_bool(r.get("is_half_day")),
        is_weekend=as_bool(r.get("is_weekend")),
        is_holiday=as_bool(r.get("is_holiday")),
        is_regularized=as_bool(r.get("is_regularized")),
        regularized_by=r.get("regularized_by"),
        regularized_reason=r.get("regularized_reason"),
        regularized_at=r.get("regularized_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM attendance_records ar WHERE ar.attendance_id=%s",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM attendance_records ar WHERE ar.user_id=%s AND ar.work_date=%s",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_open_record(self, user_id: int, *, since: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records ar
                WHERE ar.user_id=%s AND ar.work_date >= %s AND ar.punch_out_time IS NULL
                ORDER BY ar.punch_in_time DESC
                LIMIT 1
                """,
                (int(user_id), since),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records ar
                WHERE ar.user_id=%s
                ORDER BY ar.work_date DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_open_for_org(self, org_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records ar
                WHERE ar.org_id=%s AND ar.punch_out_time IS NULL
                ORDER BY ar.punch_in_time ASC
                """,
                (int(org_id),),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_for_org(
        self,
        org_id: int,
        *,
        start_date: date,
        end_date: date,
        user_id: Optional[int] = None,
        outside_geofence_only: bool = False,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["ar.org_id=%s", "ar.work_date BETWEEN %s AND %s"]
        params: list[object] = [int(org_id), start_date, end_date]
        if user_id is not None:
            clauses.append("ar.user_id=%s")
            params.append(int(user_id))
        if outside_geofence_only:
            clauses.append("ar.is_outside_geofence=1")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records ar
                WHERE {" AND ".join(clauses)}
                ORDER BY ar.work_date DESC, ar.punch_in_time DESC
                """,
                tuple(params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def create_punch_in(
        self,
        *,
        user_id: int,
        org_id: int,
        work_date: date,
        shift_id: Optional[int],
        punch_in_time: datetime,
        location: PunchLocation,
        distance: Optional[float],
        is_outside_geofence: bool,
        status: AttendanceStatus,
        is_late: bool,
        is_weekend: bool,
        is_holiday: bool,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    user_id, org_id, work_date, shift_id, punch_in_time,
                    punch_in_latitude, punch_in_longitude, punch_in_address, punch_in_distance, device_info,
                    is_outside_geofence, status, is_late, is_weekend, is_holiday
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    int(org_id),
                    work_date,
                    shift_id,
                    punch_in_time,
                    location.latitude,
                    location.longitude,
                    location.address,
                    distance,
                    location.device_info,
                    int(is_outside_geofence),
                    status.value,
                    int(is_late),
                    int(is_weekend),
                    int(is_holiday),
                ),
            )
            return int(cur.lastrowid)

    def update_punch_out(
        self,
        *,
        attendance_id: int,
        punch_out_time: datetime,
        location: PunchLocation,
        distance: Optional[float],
        is_outside_geofence: bool,
        status: AttendanceStatus,
        is_early_out: bool,
        is_half_day: bool,
        total_hours: float,
        break_hours: float,
        effective_hours: float,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET punch_out_time=%s, punch_out_latitude=%s, punch_out_longitude=%s, punch_out_address=%s,
                    punch_out_distance=%s, is_outside_geofence=%s, status=%s, is_early_out=%s, is_half_day=%s,
                    total_hours=%s, break_hours=%s, effective_hours=%s
                WHERE attendance_id=%s AND punch_out_time IS NULL
                """,
                (
                    punch_out_time,
                    location.latitude,
                    location.longitude,
                    location.address,
                    distance,
                    int(is_outside_geofence),
                    status.value,
                    int(is_early_out),
                    int(is_half_day),
                    total_hours,
                    break_hours,
                    effective_hours,
                    int(attendance_id),
                ),
            )
            return cur.rowcount > 0

    def set_geofence_override(self, *, attendance_id: int, override_by: int, reason: str, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET geofence_override_by=%s, geofence_override_reason=%s, geofence_override_at=%s
                WHERE attendance_id=%s
                """,
                (int(override_by), reason, at, int(attendance_id)),
            )
            return cur.rowcount > 0

    def close_open_record(
        self,
        *,
        attendance_id: int,
        punch_out_time: datetime,
        address: str,
        regularized_by: int,
        reason: str,
        at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET punch_out_time=%s, punch_out_address=%s,
                    is_regularized=1, regularized_by=%s, regularized_reason=%s, regularized_at=%s
                WHERE attendance_id=%s AND punch_out_time IS NULL
                """,
                (punch_out_time, address, int(regularized_by), reason, at, int(attendance_id)),
            )
            return cur.rowcount > 0

    def apply_regularization(
        self,
        *,
        attendance_id: int,
        punch_in_time: datetime,
        punch_out_time: Optional[datetime],
        total_hours: Optional[float],
        effective_hours: Optional[float],
        regularized_by: int,
        reason: str,
        at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET punch_in_time=%s, punch_out_time=%s, total_hours=%s, effective_hours=%s,
                    is_regularized=1, regularized_by=%s, regularized_reason=%s, regularized_at=%s
                WHERE attendance_id=%s
                """,
                (
                    punch_in_time,
                    punch_out_time,
                    total_hours,
                    effective_hours,
                    int(regularized_by),
                    reason,
                    at,
                    int(attendance_id),
                ),
            )
            return cur.rowcount > 0

    def get_report_rows(
        self,
        *,
        org_id: int,
        start_date: date,
        end_date: date,
        department: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        clauses = ["ar.org_id=%s", "ar.work_date BETWEEN %s AND %s"]
        params: list[object] = [int(org_id), start_date, end_date]

        if department:
            clauses.append("u.department=%s")
            params.append(department)
        if user_id is not None:
            clauses.append("u.user_id=%s")
            params.append(int(user_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    u.user_id, u.full_name, u.username, u.department,
                    s.shift_name, COALESCE(s.break_minutes, 0) AS break_minutes,
                    ar.work_date, ar.punch_in_time, ar.punch_out_time, ar.status,
                    ar.is_late, ar.is_early_out, ar.is_regularized, ar.is_outside_geofence
                FROM attendance_records ar
                JOIN users u ON u.user_id = ar.user_id
                LEFT JOIN shifts s ON s.shift_id = ar.shift_id
                WHERE {where}
                ORDER BY ar.work_date DESC, u.user_id ASC
                """,
                tuple(params),
            )
            return [
                AttendanceReportRow(
                    user_id=int(r["user_id"]),
                    full_name=r["full_name"],
                    username=r["username"],
                    department=r.get("department"),
                    shift_name=r.get("shift_name"),
                    break_minutes=int(r.get("break_minutes") or 0),
                    work_date=r["work_date"],
                    punch_in_time=r["punch_in_time"],
                    punch_out_time=r.get("punch_out_time"),
                    status=AttendanceStatus(r["status"]),
                    is_late=as_bool(r.get("is_late")),
                    is_early_out=as_bool(r.get("is_early_out")),
                    is_regularized=as_bool(r.get("is_regularized")),
                    is_outside_geofence=as_bool(r.get("is_outside_geofence")),
                )
                for r in fetchall(cur)
            ]
