from __future__ import annotations

import math
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_positive_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number")
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return number


def optional_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if math.isnan(number):
        raise ValidationError(f"{field_name} must be a number")
    return number


def require_coordinate(latitude: Any, longitude: Any) -> tuple[float, float]:
    lat = optional_float(latitude, "Latitude")
    lon = optional_float(longitude, "Longitude")
    if lat is None or lon is None:
        raise ValidationError("Latitude and longitude are required")
    if not -90 <= lat <= 90:
        raise ValidationError("Latitude must be between -90 and 90")
    if not -180 <= lon <= 180:
        raise ValidationError("Longitude must be between -180 and 180")
    return lat, lon
