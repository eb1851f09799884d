from __future__ import annotations

from datetime import date, time
from typing import Optional, Protocol, Sequence

from .model import EmployeeShift, Shift


class ShiftRepository(Protocol):
    def list_for_org(self, org_id: int, *, active_only: bool = True) -> Sequence[Shift]:
        raise NotImplementedError

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        raise NotImplementedError

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
        raise NotImplementedError

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
        raise NotImplementedError

    def set_active(self, shift_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    # Assignments
    def list_assignments(self, user_id: int) -> Sequence[EmployeeShift]:
        raise NotImplementedError

    def list_org_assignments(self, org_id: int, *, on_date: date) -> Sequence[dict]:
        """Assignments covering ``on_date`` joined with user and shift names."""

        raise NotImplementedError

    def close_open_assignments(self, user_id: int, *, effective_to: date) -> int:
        """Close every assignment still open (or ending after ``effective_to``)."""

        raise NotImplementedError

    def create_assignment(
        self,
        *,
        user_id: int,
        shift_id: int,
        effective_from: date,
        effective_to: Optional[date],
        assigned_by: Optional[int],
    ) -> int:
        raise NotImplementedError

    def get_assignment_for_date(self, user_id: int, on_date: date) -> Optional[EmployeeShift]:
        raise NotImplementedError
