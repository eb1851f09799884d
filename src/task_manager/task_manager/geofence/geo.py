"""Great-circle distance helpers used for punch-in/punch-out geofencing."""

from __future__ import annotations

import math
from typing import Any

from ..core.constants import EARTH_RADIUS_METERS


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two WGS84 points, in metres."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"


def is_valid_coordinate(latitude: Any, longitude: Any) -> bool:
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        return False
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def check_geofence(
    latitude: float,
    longitude: float,
    center_latitude: float,
    center_longitude: float,
    threshold_meters: float,
) -> tuple[bool, float]:
    """Return ``(is_inside, distance)``; inside when the distance does not exceed the threshold."""

    distance = round(calculate_distance(latitude, longitude, center_latitude, center_longitude), 2)
    return distance <= threshold_meters, distance
