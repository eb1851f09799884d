from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...shifts.model import Shift


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None

    @property
    def is_late(self) -> bool:
        return self.status in {AttendanceStatus.LATE, AttendanceStatus.LATE_AND_EARLY_OUT}

    @property
    def is_early_out(self) -> bool:
        return self.status in {AttendanceStatus.EARLY_OUT, AttendanceStatus.LATE_AND_EARLY_OUT}


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide_punch_in(self, *, now: datetime, shift: Optional[Shift]) -> StatusDecision:
        raise NotImplementedError

    @abstractmethod
    def decide_punch_out(self, *, now: datetime, shift: Optional[Shift], current: AttendanceStatus) -> StatusDecision:
        raise NotImplementedError
