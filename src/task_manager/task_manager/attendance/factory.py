from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..shifts.model import Shift
from .strategies.base import AttendanceStrategy
from .strategies.early_out_strategy import EarlyOutStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules.

    Late is decided at minute precision: 09:15:40 is still on time for a 09:00
    start with a 15 minute threshold.
    """

    grace_minutes: int = 0

    def for_punch_in(self, *, now: datetime, work_date: date, shift: Optional[Shift]) -> AttendanceStrategy:
        if not shift:
            return NormalStrategy()

        shift_start = datetime.combine(work_date, shift.start_time)
        allowed = timedelta(minutes=shift.late_threshold_minutes + self.grace_minutes)
        if now.replace(second=0, microsecond=0) <= shift_start + allowed:
            return NormalStrategy()
        return LateStrategy()

    def for_punch_out(
        self, *, now: datetime, work_date: date, punch_in: datetime, shift: Optional[Shift]
    ) -> AttendanceStrategy:
        if not shift:
            return NormalStrategy()

        end_date = work_date
        if shift.is_overnight:
            # Only a punch-out on the calendar day after the punch-in can be early.
            end_date = punch_in.date() + timedelta(days=1)
            if now.date() != end_date:
                return NormalStrategy()

        shift_end = datetime.combine(end_date, shift.end_time)
        if now < shift_end - timedelta(minutes=shift.early_out_threshold_minutes):
            return EarlyOutStrategy()
        return NormalStrategy()
