from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift
from .base import AttendanceStrategy, StatusDecision


class EarlyOutStrategy(AttendanceStrategy):
    """Punch-out before shift end minus the early-out threshold. A late punch-in stays flagged."""

    def decide_punch_in(self, *, now: datetime, shift: Optional[Shift]) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.ON_TIME)

    def decide_punch_out(self, *, now: datetime, shift: Optional[Shift], current: AttendanceStatus) -> StatusDecision:
        if current in {AttendanceStatus.LATE, AttendanceStatus.LATE_AND_EARLY_OUT}:
            return StatusDecision(status=AttendanceStatus.LATE_AND_EARLY_OUT)
        return StatusDecision(status=AttendanceStatus.EARLY_OUT)
