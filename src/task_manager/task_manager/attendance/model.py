from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one punch-in/punch-out pair for a work date."""

    attendance_id: int
    user_id: int
    org_id: int
    work_date: date
    punch_in_time: datetime
    punch_out_time: Optional[datetime] = None
    shift_id: Optional[int] = None
    status: AttendanceStatus = AttendanceStatus.ON_TIME
    punch_in_latitude: Optional[float] = None
    punch_in_longitude: Optional[float] = None
    punch_in_address: Optional[str] = None
    punch_in_distance: Optional[float] = None
    punch_out_latitude: Optional[float] = None
    punch_out_longitude: Optional[float] = None
    punch_out_address: Optional[str] = None
    punch_out_distance: Optional[float] = None
    device_info: Optional[str] = None
    is_outside_geofence: bool = False
    geofence_override_by: Optional[int] = None
    geofence_override_reason: Optional[str] = None
    geofence_override_at: Optional[datetime] = None
    total_hours: Optional[float] = None
    break_hours: Optional[float] = None
    effective_hours: Optional[float] = None
    is_late: bool = False
    is_early_out: bool = False
    is_half_day: bool = False
    is_weekend: bool = False
    is_holiday: bool = False
    is_regularized: bool = False
    regularized_by: Optional[int] = None
    regularized_reason: Optional[str] = None
    regularized_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.punch_out_time is None


@dataclass(frozen=True)
class PunchLocation:
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    device_info: Optional[str] = None


@dataclass(frozen=True)
class AttendanceReportRow:
    """Read-model for reports/exports (joined with user and shift)."""

    user_id: int
    full_name: str
    username: str
    department: Optional[str]
    shift_name: Optional[str]
    break_minutes: int
    work_date: date
    punch_in_time: datetime
    punch_out_time: Optional[datetime]
    status: AttendanceStatus
    is_late: bool = False
    is_early_out: bool = False
    is_regularized: bool = False
    is_outside_geofence: bool = False
