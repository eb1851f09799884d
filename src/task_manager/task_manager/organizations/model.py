from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional

from ..core.constants import (
    DEFAULT_DEPARTMENTS,
    DEFAULT_GEOFENCE_ADMIN_OVERRIDE,
    DEFAULT_GEOFENCE_ENABLED,
    DEFAULT_GEOFENCE_MODE,
    DEFAULT_GEOFENCE_THRESHOLD_METERS,
)
from ..core.enums import EnforcementMode


@dataclass(frozen=True)
class GeofenceSettings:
    enabled: bool = DEFAULT_GEOFENCE_ENABLED
    enforcement_mode: EnforcementMode = EnforcementMode(DEFAULT_GEOFENCE_MODE)
    distance_threshold_meters: float = DEFAULT_GEOFENCE_THRESHOLD_METERS
    allow_admin_override: bool = DEFAULT_GEOFENCE_ADMIN_OVERRIDE

    @classmethod
    def from_json(cls, data: Optional[Mapping[str, Any]]) -> "GeofenceSettings":
        """Build settings from the stored JSON blob, filling missing keys with defaults."""

        data = data or {}
        mode = data.get("enforcement_mode") or DEFAULT_GEOFENCE_MODE
        try:
            enforcement = EnforcementMode(mode)
        except ValueError:
            enforcement = EnforcementMode(DEFAULT_GEOFENCE_MODE)
        threshold = data.get("distance_threshold_meters")
        return cls(
            enabled=bool(data.get("enabled", DEFAULT_GEOFENCE_ENABLED)),
            enforcement_mode=enforcement,
            distance_threshold_meters=float(threshold) if threshold is not None else DEFAULT_GEOFENCE_THRESHOLD_METERS,
            allow_admin_override=bool(data.get("allow_admin_override", DEFAULT_GEOFENCE_ADMIN_OVERRIDE)),
        )

    def to_json(self) -> dict:
        return {
            "enabled": self.enabled,
            "enforcement_mode": self.enforcement_mode.value,
            "distance_threshold_meters": self.distance_threshold_meters,
            "allow_admin_override": self.allow_admin_override,
        }


@dataclass(frozen=True)
class Organization:
    """Domain entity: the clinic (tenant) every user, task and shift belongs to."""

    org_id: int
    org_name: str
    departments: tuple[str, ...] = DEFAULT_DEPARTMENTS
    whatsapp_enabled: bool = True
    auto_alerts_enabled: bool = True
    whatsapp_endpoint: Optional[str] = None
    location_latitude: Optional[float] = None
    location_longitude: Optional[float] = None
    location_address: Optional[str] = None
    geofence: GeofenceSettings = field(default_factory=GeofenceSettings)
    advisory_types: tuple[str, ...] = ()
    round_types: tuple[str, ...] = ()
    follow_up_types: tuple[str, ...] = ()

    @property
    def has_location(self) -> bool:
        return self.location_latitude is not None and self.location_longitude is not None


@dataclass(frozen=True)
class Holiday:
    holiday_id: int
    org_id: int
    holiday_date: date
    holiday_name: str
