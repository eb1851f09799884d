from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import parse_hhmm
from ..common.validators import require_non_empty
from ..core.constants import (
    DEFAULT_BREAK_MINUTES,
    DEFAULT_EARLY_OUT_THRESHOLD_MINUTES,
    DEFAULT_LATE_THRESHOLD_MINUTES,
    DEFAULT_WEEKLY_OFF_DAYS,
)
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import EmployeeShift, Shift
from .repository import ShiftRepository

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _clean_off_days(days: Optional[Sequence[str]]) -> list[str]:
    if days is None:
        return list(DEFAULT_WEEKLY_OFF_DAYS)
    out: list[str] = []
    for d in days:
        name = str(d or "").strip().lower()
        if name not in WEEKDAYS:
            raise ValidationError(f"Unknown weekday: {d}")
        if name not in out:
            out.append(name)
    return out


def _non_negative(value, field_name: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number")
    if number < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return number


class ShiftService:
    """Use case: shift definitions and employee shift assignments."""

    def __init__(self, shifts: ShiftRepository, users: UserRepository):
        self._shifts = shifts
        self._users = users

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can manage shifts")

    def _get_org_shift(self, org_id: int, shift_id: int) -> Shift:
        shift = self._shifts.get_by_id(int(shift_id))
        if not shift or shift.org_id != int(org_id):
            raise NotFoundError("Shift not found")
        return shift

    def _shift_fields(
        self,
        *,
        shift_name: str,
        start_time: str,
        end_time: str,
        break_minutes,
        late_threshold_minutes,
        early_out_threshold_minutes,
        weekly_off_days,
    ) -> dict:
        start = parse_hhmm(start_time, "Start time")
        end = parse_hhmm(end_time, "End time")
        if start is None or end is None:
            raise ValidationError("Start time and end time are required")
        if start == end:
            raise ValidationError("Start time and end time cannot be equal")

        return {
            "shift_name": require_non_empty(shift_name, "Shift name"),
            "start_time": start,
            "end_time": end,
            "break_minutes": _non_negative(break_minutes, "Break duration", DEFAULT_BREAK_MINUTES),
            "late_threshold_minutes": _non_negative(
                late_threshold_minutes, "Late threshold", DEFAULT_LATE_THRESHOLD_MINUTES
            ),
            "early_out_threshold_minutes": _non_negative(
                early_out_threshold_minutes, "Early-out threshold", DEFAULT_EARLY_OUT_THRESHOLD_MINUTES
            ),
            "weekly_off_days": _clean_off_days(weekly_off_days),
            # end before start means the shift runs past midnight
            "is_overnight": end < start,
        }

    def list_shifts(self, *, org_id: int) -> Sequence[Shift]:
        return self._shifts.list_for_org(int(org_id), active_only=True)

    def create_shift(
        self,
        *,
        current_role: Role,
        org_id: int,
        shift_name: str,
        start_time: str,
        end_time: str,
        break_minutes=None,
        late_threshold_minutes=None,
        early_out_threshold_minutes=None,
        weekly_off_days: Optional[Sequence[str]] = None,
    ) -> int:
        self._require_admin(current_role)
        fields = self._shift_fields(
            shift_name=shift_name,
            start_time=start_time,
            end_time=end_time,
            break_minutes=break_minutes,
            late_threshold_minutes=late_threshold_minutes,
            early_out_threshold_minutes=early_out_threshold_minutes,
            weekly_off_days=weekly_off_days,
        )
        return self._shifts.create_shift(org_id=int(org_id), **fields)

    def update_shift(
        self,
        *,
        current_role: Role,
        org_id: int,
        shift_id: int,
        shift_name: str,
        start_time: str,
        end_time: str,
        break_minutes=None,
        late_threshold_minutes=None,
        early_out_threshold_minutes=None,
        weekly_off_days: Optional[Sequence[str]] = None,
    ) -> None:
        self._require_admin(current_role)
        shift = self._get_org_shift(org_id, shift_id)
        fields = self._shift_fields(
            shift_name=shift_name,
            start_time=start_time,
            end_time=end_time,
            break_minutes=break_minutes,
            late_threshold_minutes=late_threshold_minutes,
            early_out_threshold_minutes=early_out_threshold_minutes,
            weekly_off_days=weekly_off_days,
        )
        if not self._shifts.update_shift(shift.shift_id, **fields):
            raise ValidationError("Failed to update shift")

    def deactivate_shift(self, *, current_role: Role, org_id: int, shift_id: int) -> None:
        """Soft delete: past attendance keeps pointing at the shift."""

        self._require_admin(current_role)
        shift = self._get_org_shift(org_id, shift_id)
        self._shifts.set_active(shift.shift_id, is_active=False)

    def assign_shift(
        self,
        *,
        current_role: Role,
        org_id: int,
        assigned_by: int,
        user_id: int,
        shift_id: int,
        effective_from: date,
        effective_to: Optional[date] = None,
    ) -> int:
        self._require_admin(current_role)

        user = self._users.get_by_id(int(user_id))
        if not user or user.org_id != int(org_id):
            raise NotFoundError("Team member not found")
        shift = self._get_org_shift(org_id, shift_id)
        if not shift.is_active:
            raise ValidationError("Cannot assign an inactive shift")
        if effective_to is not None and effective_to < effective_from:
            raise ValidationError("Effective end date must be on or after the start date")

        closed = self._shifts.close_open_assignments(user.user_id, effective_to=effective_from - timedelta(days=1))
        if closed:
            logger.info("Closed %s previous shift assignment(s) for user %s", closed, user.user_id)

        return self._shifts.create_assignment(
            user_id=user.user_id,
            shift_id=shift.shift_id,
            effective_from=effective_from,
            effective_to=effective_to,
            assigned_by=int(assigned_by),
        )

    def current_shift(self, *, user_id: int, on_date: date) -> Optional[Shift]:
        assignment = self._shifts.get_assignment_for_date(int(user_id), on_date)
        if not assignment:
            return None
        return self._shifts.get_by_id(assignment.shift_id)

    def assignment_history(self, *, user_id: int) -> Sequence[EmployeeShift]:
        return self._shifts.list_assignments(int(user_id))

    def roster(self, *, org_id: int, on_date: date) -> Sequence[dict]:
        return self._shifts.list_org_assignments(int(org_id), on_date=on_date)


def shift_to_dict(shift: Shift) -> dict:
    return {
        "shift_id": shift.shift_id,
        "shift_name": shift.shift_name,
        "start_time": shift.start_time.strftime("%H:%M"),
        "end_time": shift.end_time.strftime("%H:%M"),
        "break_minutes": shift.break_minutes,
        "late_threshold_minutes": shift.late_threshold_minutes,
        "early_out_threshold_minutes": shift.early_out_threshold_minutes,
        "weekly_off_days": list(shift.weekly_off_days),
        "is_overnight": shift.is_overnight,
        "is_active": shift.is_active,
    }
