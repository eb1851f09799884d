from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, AttendanceReportRow, PunchLocation


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_open_record(self, user_id: int, *, since: date) -> Optional[AttendanceRecord]:
        """Latest record with a punch-in and no punch-out, work date >= ``since``."""

        raise NotImplementedError

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_open_for_org(self, org_id: int) -> Sequence[AttendanceRecord]:
        """Every record of the organization with a punch-in and no punch-out."""

        raise NotImplementedError

    def list_for_org(
        self,
        org_id: int,
        *,
        start_date: date,
        end_date: date,
        user_id: Optional[int] = None,
        outside_geofence_only: bool = False,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

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
        raise NotImplementedError

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
        raise NotImplementedError

    def set_geofence_override(self, *, attendance_id: int, override_by: int, reason: str, at: datetime) -> bool:
        raise NotImplementedError

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
        """Set the punch-out of a still open record and mark it regularized."""

        raise NotImplementedError

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
        """Admin-only override applied after an approved regularization request."""

        raise NotImplementedError

    def get_report_rows(
        self,
        *,
        org_id: int,
        start_date: date,
        end_date: date,
        department: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        raise NotImplementedError
