from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional, Sequence

from ..common.validators import optional_float, require_non_empty
from ..core.constants import (
    DEFAULT_BREAK_MINUTES,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_SHIFT_HOURS,
    MAX_SHIFT_HOURS,
    MIN_OVERNIGHT_PUNCH_HOURS,
    OPEN_PUNCH_LOOKBACK_DAYS,
    STALE_SESSION_HOURS,
)
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..geofence.service import GeofenceValidator
from ..organizations.model import Organization
from ..organizations.repository import OrganizationRepository
from ..shifts.model import Shift
from ..shifts.repository import ShiftRepository
from ..users.model import User
from ..users.repository import UserRepository
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord, PunchLocation
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def worked_hours(punch_in: datetime, punch_out: datetime, break_hours: float) -> tuple[float, float]:
    """Return ``(total_hours, effective_hours)``; effective never drops below zero."""

    total = round((punch_out - punch_in).total_seconds() / 3600, 2)
    return total, round(max(total - break_hours, 0.0), 2)


def is_half_day(effective_hours: float, shift: Optional[Shift]) -> bool:
    """Worked less than half of the shift (or of a default 8 hour day)."""

    full_day = shift.duration_hours if shift else DEFAULT_SHIFT_HOURS
    return effective_hours < full_day / 2


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        shifts: ShiftRepository,
        organizations: OrganizationRepository,
        *,
        geofence: Optional[GeofenceValidator] = None,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
    ):
        self._attendance = attendance
        self._users = users
        self._shifts = shifts
        self._organizations = organizations
        self._geofence = geofence or GeofenceValidator()
        self._factory = strategy_factory or AttendanceStrategyFactory()

    def _get_user_and_org(self, user_id: int) -> tuple[User, Organization]:
        user = self._users.get_by_id(int(user_id))
        if not user or not user.is_active:
            raise ValidationError("Employee does not exist")
        org = self._organizations.get_by_id(user.org_id)
        if not org:
            raise ValidationError("Organization not found for this employee")
        return user, org

    def _shift_for(self, user_id: int, on_date: date) -> Optional[Shift]:
        assignment = self._shifts.get_assignment_for_date(user_id, on_date)
        if not assignment:
            return None
        return self._shifts.get_by_id(assignment.shift_id)

    def _open_record(self, user_id: int, now: datetime) -> Optional[AttendanceRecord]:
        return self._attendance.get_open_record(
            user_id, since=now.date() - timedelta(days=OPEN_PUNCH_LOOKBACK_DAYS)
        )

    def punch_in(self, user_id: int, *, location: Optional[PunchLocation] = None, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or datetime.now()
        location = location or PunchLocation()
        user, org = self._get_user_and_org(user_id)

        if self._open_record(user.user_id, now):
            raise ValidationError("You already have an active punch-in. Please punch out first.")

        geo = self._geofence.validate(org, location.latitude, location.longitude)

        shift = self._shift_for(user.user_id, now.date())
        work_date = now.date()
        if shift and shift.is_overnight and now.time() < shift.end_time:
            # After midnight on an overnight shift: the shift started yesterday.
            work_date -= timedelta(days=1)

        if self._attendance.get_for_user_and_date(user.user_id, work_date):
            raise ValidationError(f"Attendance for {work_date:%Y-%m-%d} is already complete")

        strategy = self._factory.for_punch_in(now=now, work_date=work_date, shift=shift)
        decision = strategy.decide_punch_in(now=now, shift=shift)

        is_weekend = shift.is_weekly_off(work_date) if shift else work_date.weekday() == 6

        attendance_id = self._attendance.create_punch_in(
            user_id=user.user_id,
            org_id=org.org_id,
            work_date=work_date,
            shift_id=shift.shift_id if shift else None,
            punch_in_time=now,
            location=location,
            distance=geo.distance,
            is_outside_geofence=geo.is_outside,
            status=decision.status,
            is_late=decision.is_late,
            is_weekend=is_weekend,
            is_holiday=self._organizations.is_holiday(org.org_id, work_date),
        )
        if decision.note:
            logger.info("User %s: %s", user.user_id, decision.note)
        if geo.is_outside:
            logger.warning("User %s punched in %.0fm outside the geofence", user.user_id, geo.distance)

        return self._attendance.get_by_id(attendance_id)

    def punch_out(self, user_id: int, *, location: Optional[PunchLocation] = None, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or datetime.now()
        location = location or PunchLocation()
        user, org = self._get_user_and_org(user_id)

        record = self._open_record(user.user_id, now)
        if not record:
            raise ValidationError("No active punch-in found. Please punch in first.")
        if now < record.punch_in_time:
            raise ValidationError("Punch-out time cannot be before punch-in time")

        shift = self._shifts.get_by_id(record.shift_id) if record.shift_id else None
        if shift and shift.is_overnight:
            hours_in = (now - record.punch_in_time).total_seconds() / 3600
            if hours_in < MIN_OVERNIGHT_PUNCH_HOURS:
                raise ValidationError(
                    f"Too early to punch out. Minimum {MIN_OVERNIGHT_PUNCH_HOURS} hours required for overnight shifts."
                )
            if hours_in > MAX_SHIFT_HOURS:
                raise ValidationError(f"Exceeds maximum shift duration of {MAX_SHIFT_HOURS} hours.")

        geo = self._geofence.validate(org, location.latitude, location.longitude)

        strategy = self._factory.for_punch_out(
            now=now, work_date=record.work_date, punch_in=record.punch_in_time, shift=shift
        )
        decision = strategy.decide_punch_out(now=now, shift=shift, current=record.status)

        break_hours = (shift.break_minutes if shift else DEFAULT_BREAK_MINUTES) / 60
        total_hours, effective_hours = worked_hours(record.punch_in_time, now, break_hours)

        ok = self._attendance.update_punch_out(
            attendance_id=record.attendance_id,
            punch_out_time=now,
            location=location,
            distance=geo.distance,
            is_outside_geofence=record.is_outside_geofence or geo.is_outside,
            status=decision.status,
            is_early_out=decision.is_early_out,
            is_half_day=is_half_day(effective_hours, shift),
            total_hours=total_hours,
            break_hours=round(break_hours, 2),
            effective_hours=effective_hours,
        )
        if not ok:
            raise ValidationError("You have already punched out")

        return self._attendance.get_by_id(record.attendance_id)

    def override_geofence(
        self,
        *,
        current_role: Role,
        admin_user_id: int,
        org_id: int,
        attendance_id: int,
        reason: str,
        now: Optional[datetime] = None,
    ) -> None:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can override geofence violations")

        reason = require_non_empty(reason, "Override reason")
        record = self._attendance.get_by_id(int(attendance_id))
        if not record or record.org_id != int(org_id):
            raise NotFoundError("Attendance record not found")

        org = self._organizations.get_by_id(int(org_id))
        if not org or not org.geofence.allow_admin_override:
            raise ValidationError("Admin override is disabled for this organization")
        if not record.is_outside_geofence:
            raise ValidationError("This attendance record has no geofence violation")

        self._attendance.set_geofence_override(
            attendance_id=record.attendance_id,
            override_by=int(admin_user_id),
            reason=reason,
            at=now or datetime.now(),
        )

    def close_stale_open_sessions(
        self,
        *,
        current_role: Role,
        admin_user_id: int,
        org_id: int,
        max_open_hours: Any = STALE_SESSION_HOURS,
        now: Optional[datetime] = None,
    ) -> dict:
        """Close punches left open for ``max_open_hours`` or longer.

        The punch-out is set to punch-in + ``max_open_hours`` (never later than
        now) and the record is marked regularized by the admin.
        """

        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can close open attendance sessions")
        now = now or datetime.now()
        max_hours = optional_float(max_open_hours, "Max open hours")
        if max_hours is None:
            max_hours = float(STALE_SESSION_HOURS)
        if max_hours <= 0:
            raise ValidationError("Max open hours must be greater than 0")
        limit = timedelta(hours=max_hours)

        open_records = self._attendance.list_open_for_org(int(org_id))
        reason = f"Auto-closed stale open attendance session (>{max_hours:g}h)."
        closed_ids = []
        for record in open_records:
            if now - record.punch_in_time < limit:
                continue
            closed = self._attendance.close_open_record(
                attendance_id=record.attendance_id,
                punch_out_time=min(now, record.punch_in_time + limit),
                address=f"Auto-closed by admin cleanup after {max_hours:g}h",
                regularized_by=int(admin_user_id),
                reason=reason,
                at=now,
            )
            if closed:
                closed_ids.append(record.attendance_id)

        if closed_ids:
            logger.info("Closed %s stale attendance session(s) in org %s", len(closed_ids), org_id)
        return {"closed_count": len(closed_ids), "scanned_count": len(open_records), "closed_ids": closed_ids}

    def today_status(self, user_id: int, *, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now()
        open_record = self._open_record(int(user_id), now)
        if open_record:
            return {"state": "punched_in", "record": record_to_dict(open_record)}

        record = self._attendance.get_for_user_and_date(int(user_id), now.date())
        if record:
            return {"state": "punched_out", "record": record_to_dict(record)}
        return {"state": "not_punched", "record": None}

    def history(self, user_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        return self._attendance.get_recent_for_user(int(user_id), int(limit))

    def list_for_org(
        self,
        *,
        current_role: Role,
        org_id: int,
        start: date,
        end: date,
        user_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can view team attendance")
        if end < start:
            raise ValidationError("End date must be on or after start date")
        return self._attendance.list_for_org(int(org_id), start_date=start, end_date=end, user_id=user_id)

    def geofence_violations(self, *, current_role: Role, org_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can view geofence violations")
        return self._attendance.list_for_org(
            int(org_id), start_date=start, end_date=end, outside_geofence_only=True
        )


def record_to_dict(r: AttendanceRecord) -> dict:
    def _t(value: Optional[datetime]) -> Optional[str]:
        return value.strftime("%Y-%m-%d %H:%M:%S") if value else None

    return {
        "attendance_id": r.attendance_id,
        "user_id": r.user_id,
        "work_date": r.work_date.strftime("%Y-%m-%d"),
        "shift_id": r.shift_id,
        "status": r.status.value,
        "punch_in_time": _t(r.punch_in_time),
        "punch_out_time": _t(r.punch_out_time),
        "punch_in_location": {
            "latitude": r.punch_in_latitude,
            "longitude": r.punch_in_longitude,
            "address": r.punch_in_address,
            "distance": r.punch_in_distance,
        },
        "punch_out_location": {
            "latitude": r.punch_out_latitude,
            "longitude": r.punch_out_longitude,
            "address": r.punch_out_address,
            "distance": r.punch_out_distance,
        },
        "is_outside_geofence": r.is_outside_geofence,
        "geofence_override": (
            {
                "by": r.geofence_override_by,
                "reason": r.geofence_override_reason,
                "at": _t(r.geofence_override_at),
            }
            if r.geofence_override_by
            else None
        ),
        "total_hours": r.total_hours,
        "break_hours": r.break_hours,
        "effective_hours": r.effective_hours,
        "is_late": r.is_late,
        "is_early_out": r.is_early_out,
        "is_half_day": r.is_half_day,
        "is_weekend": r.is_weekend,
        "is_holiday": r.is_holiday,
        "is_regularized": r.is_regularized,
    }
