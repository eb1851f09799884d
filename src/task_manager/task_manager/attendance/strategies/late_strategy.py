from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Punch-in after shift start plus the late threshold."""

    def decide_punch_in(self, *, now: datetime, shift: Optional[Shift]) -> StatusDecision:
        note = None
        if shift:
            note = f"Late for {shift.shift_name} (starts {shift.start_time.strftime('%H:%M')})"
        return StatusDecision(status=AttendanceStatus.LATE, note=note)

    def decide_punch_out(self, *, now: datetime, shift: Optional[Shift], current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(status=current)
