from __future__ import annotations

import calendar
from datetime import date, datetime, time
from typing import Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_optional_date(value: Optional[str], field_name: str) -> Optional[date]:
    v = (value or "").strip()
    if not v:
        return None
    try:
        return parse_iso_date(v)
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)")


def parse_optional_datetime(value: Optional[str], field_name: str) -> Optional[datetime]:
    """Accept ISO-8601 datetimes as sent by browsers (``2026-03-01T09:30``)."""

    v = (value or "").strip()
    if not v:
        return None
    if v.endswith("Z"):
        v = v[:-1]
    try:
        parsed = datetime.fromisoformat(v)
    except ValueError:
        raise ValidationError(f"{field_name} must be a datetime (YYYY-MM-DDTHH:MM)")
    return parsed.replace(tzinfo=None)


def parse_hhmm(value: Optional[str], field_name: str = "Time") -> Optional[time]:
    v = (value or "").strip()
    if not v:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"{field_name} must be HH:MM")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole months, clamping the day to the target month's end.

    ``add_months(datetime(2026, 1, 31), 1)`` -> ``2026-02-28``.
    """

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
