from __future__ import annotations

from .base import WorkedTimeCalculator
from ...attendance.model import AttendanceReportRow


class StandardWorkedTimeCalculator(WorkedTimeCalculator):
    """Standard rule: (out - in) - break_minutes, not below 0. An open punch counts as 0."""

    def worked_minutes(self, row: AttendanceReportRow) -> int:
        if not row.punch_out_time:
            return 0
        minutes = int((row.punch_out_time - row.punch_in_time).total_seconds() // 60)
        minutes -= int(row.break_minutes or 0)
        return max(minutes, 0)
