from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.enums import EnforcementMode
from ..core.exceptions import GeofenceViolationError, NotFoundError, ValidationError
from ..organizations.model import Organization
from ..organizations.repository import OrganizationRepository
from .geo import check_geofence, format_distance, is_valid_coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeofenceResult:
    distance: Optional[float]
    is_outside: bool = False


class GeofenceValidator:
    """Decide whether a punch location is acceptable for an organization."""

    def validate(self, org: Organization, latitude: Optional[float], longitude: Optional[float]) -> GeofenceResult:
        if latitude is None or longitude is None:
            return GeofenceResult(distance=None)
        if not is_valid_coordinate(latitude, longitude):
            raise ValidationError("Invalid location coordinates")

        settings = org.geofence
        if not org.has_location or not settings.enabled:
            return GeofenceResult(distance=None)

        threshold = settings.distance_threshold_meters
        inside, distance = check_geofence(
            latitude, longitude, org.location_latitude, org.location_longitude, threshold
        )
        if inside:
            return GeofenceResult(distance=distance)

        if settings.enforcement_mode == EnforcementMode.STRICT:
            logger.info("Punch rejected for org %s: %.0fm away (limit %sm)", org.org_id, distance, threshold)
            raise GeofenceViolationError(
                f"You are {distance:.0f}m away from the organization location. "
                f"Punch is not allowed beyond {threshold:g}m. "
                "Please move closer or contact your administrator.",
                distance=distance,
                threshold=threshold,
            )

        return GeofenceResult(distance=distance, is_outside=True)


class GeofenceService:
    """Settings-screen helpers (distance preview) on top of the validator."""

    def __init__(self, organizations: OrganizationRepository, *, validator: Optional[GeofenceValidator] = None):
        self._organizations = organizations
        self._validator = validator or GeofenceValidator()

    @property
    def validator(self) -> GeofenceValidator:
        return self._validator

    def preview(self, *, org_id: int, latitude: float, longitude: float) -> dict:
        org = self._organizations.get_by_id(int(org_id))
        if not org:
            raise NotFoundError("Organization not found")
        if not is_valid_coordinate(latitude, longitude):
            raise ValidationError("Invalid location coordinates")
        if not org.has_location:
            return {"configured": False, "distance": None, "formatted_distance": None, "is_inside": True}

        threshold = org.geofence.distance_threshold_meters
        inside, distance = check_geofence(
            latitude, longitude, org.location_latitude, org.location_longitude, threshold
        )
        return {
            "configured": True,
            "enabled": org.geofence.enabled,
            "enforcement_mode": org.geofence.enforcement_mode.value,
            "distance": distance,
            "formatted_distance": format_distance(distance),
            "threshold": threshold,
            "is_inside": inside,
        }
