from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.constants import (
    DEFAULT_BREAK_MINUTES,
    DEFAULT_EARLY_OUT_THRESHOLD_MINUTES,
    DEFAULT_LATE_THRESHOLD_MINUTES,
    DEFAULT_WEEKLY_OFF_DAYS,
)


@dataclass(frozen=True)
class Shift:
    """Domain entity: a work shift.

    An overnight shift ends on the calendar day after it starts (end < start).
    """

    shift_id: int
    org_id: int
    shift_name: str
    start_time: time
    end_time: time
    break_minutes: int = DEFAULT_BREAK_MINUTES
    late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES
    early_out_threshold_minutes: int = DEFAULT_EARLY_OUT_THRESHOLD_MINUTES
    weekly_off_days: tuple[str, ...] = DEFAULT_WEEKLY_OFF_DAYS
    is_overnight: bool = False
    is_active: bool = True

    def is_weekly_off(self, on_date: date) -> bool:
        return on_date.strftime("%A").lower() in {d.lower() for d in self.weekly_off_days}

    @property
    def duration_hours(self) -> float:
        """Start to end, break included."""
        start = datetime.combine(date.min, self.start_time)
        end = datetime.combine(date.min, self.end_time)
        seconds = (end - start).total_seconds() % 86400
        return seconds / 3600


@dataclass(frozen=True)
class EmployeeShift:
    """Shift assignment with an effective date range (open-ended when effective_to is None)."""

    assignment_id: int
    user_id: int
    shift_id: int
    effective_from: date
    effective_to: Optional[date] = None
    assigned_by: Optional[int] = None

    def covers(self, on_date: date) -> bool:
        return self.effective_from <= on_date and (self.effective_to is None or self.effective_to >= on_date)
