from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift
from .base import AttendanceStrategy, StatusDecision


class NormalStrategy(AttendanceStrategy):
    """On-time punch-in, punch-out keeps the current status."""

    def decide_punch_in(self, *, now: datetime, shift: Optional[Shift]) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.ON_TIME)

    def decide_punch_out(self, *, now: datetime, shift: Optional[Shift], current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(status=current)
