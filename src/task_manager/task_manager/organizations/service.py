from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional, Sequence

from ..common.validators import optional_float, require_non_empty
from ..core.enums import EnforcementMode, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .model import GeofenceSettings, Holiday, Organization
from .repository import OrganizationRepository


def _clean_names(values: Iterable[Any]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for v in values or []:
        name = str(v or "").strip()
        if name and name.lower() not in seen:
            seen.add(name.lower())
            out.append(name)
    return out


class OrganizationService:
    """Use case: organization settings (WhatsApp, departments, categories, geofence, holidays)."""

    def __init__(self, organizations: OrganizationRepository):
        self._organizations = organizations

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can change organization settings")

    def get(self, org_id: int) -> Organization:
        org = self._organizations.get_by_id(int(org_id))
        if not org:
            raise NotFoundError("Organization not found")
        return org

    def update_whatsapp_settings(
        self,
        *,
        current_role: Role,
        org_id: int,
        whatsapp_enabled: bool,
        auto_alerts_enabled: bool,
        whatsapp_endpoint: Optional[str] = None,
    ) -> Organization:
        self._require_admin(current_role)
        self.get(org_id)

        endpoint = (whatsapp_endpoint or "").strip() or None
        if endpoint and not endpoint.startswith(("http://", "https://")):
            raise ValidationError("WhatsApp endpoint must be an http(s) URL")

        self._organizations.update_whatsapp_settings(
            int(org_id),
            whatsapp_enabled=bool(whatsapp_enabled),
            auto_alerts_enabled=bool(auto_alerts_enabled),
            whatsapp_endpoint=endpoint,
        )
        return self.get(org_id)

    def update_departments(self, *, current_role: Role, org_id: int, departments: Sequence[str]) -> Organization:
        self._require_admin(current_role)
        self.get(org_id)

        names = _clean_names(departments)
        if not names:
            raise ValidationError("At least one department is required")

        self._organizations.update_departments(int(org_id), names)
        return self.get(org_id)

    def update_task_categories(
        self,
        *,
        current_role: Role,
        org_id: int,
        advisory_types: Sequence[str] = (),
        round_types: Sequence[str] = (),
        follow_up_types: Sequence[str] = (),
    ) -> Organization:
        self._require_admin(current_role)
        self.get(org_id)

        self._organizations.update_task_categories(
            int(org_id),
            advisory_types=_clean_names(advisory_types),
            round_types=_clean_names(round_types),
            follow_up_types=_clean_names(follow_up_types),
        )
        return self.get(org_id)

    def update_geofence(
        self,
        *,
        current_role: Role,
        org_id: int,
        latitude: Any,
        longitude: Any,
        address: Optional[str] = None,
        enabled: bool = True,
        enforcement_mode: str = EnforcementMode.STRICT.value,
        distance_threshold_meters: Any = None,
        allow_admin_override: bool = True,
    ) -> Organization:
        self._require_admin(current_role)
        current = self.get(org_id)

        lat = optional_float(latitude, "Latitude")
        lon = optional_float(longitude, "Longitude")
        if (lat is None) != (lon is None):
            raise ValidationError("Latitude and longitude must be set together")
        if lat is not None and not -90 <= lat <= 90:
            raise ValidationError("Latitude must be between -90 and 90")
        if lon is not None and not -180 <= lon <= 180:
            raise ValidationError("Longitude must be between -180 and 180")

        try:
            mode = EnforcementMode(enforcement_mode)
        except ValueError:
            raise ValidationError("Enforcement mode must be 'strict' or 'warning'")

        threshold = optional_float(distance_threshold_meters, "Distance threshold")
        if threshold is None:
            threshold = current.geofence.distance_threshold_meters
        if threshold <= 0:
            raise ValidationError("Distance threshold must be greater than 0")

        settings = GeofenceSettings(
            enabled=bool(enabled),
            enforcement_mode=mode,
            distance_threshold_meters=threshold,
            allow_admin_override=bool(allow_admin_override),
        )
        self._organizations.update_geofence(
            int(org_id),
            latitude=lat,
            longitude=lon,
            address=(address or "").strip() or None,
            settings=settings,
        )
        return self.get(org_id)

    def list_holidays(self, *, org_id: int, year: Optional[int] = None) -> Sequence[Holiday]:
        if year:
            return self._organizations.list_holidays(int(org_id), start=date(year, 1, 1), end=date(year, 12, 31))
        return self._organizations.list_holidays(int(org_id))

    def add_holiday(self, *, current_role: Role, org_id: int, holiday_date: date, holiday_name: str) -> int:
        self._require_admin(current_role)
        name = require_non_empty(holiday_name, "Holiday name")
        if self._organizations.is_holiday(int(org_id), holiday_date):
            raise ValidationError("A holiday already exists on this date")
        return self._organizations.add_holiday(int(org_id), holiday_date=holiday_date, holiday_name=name)

    def delete_holiday(self, *, current_role: Role, org_id: int, holiday_id: int) -> None:
        self._require_admin(current_role)
        if not self._organizations.delete_holiday(int(org_id), int(holiday_id)):
            raise NotFoundError("Holiday not found")


def organization_to_dict(org: Organization) -> dict:
    return {
        "org_id": org.org_id,
        "org_name": org.org_name,
        "departments": list(org.departments),
        "whatsapp_enabled": org.whatsapp_enabled,
        "auto_alerts_enabled": org.auto_alerts_enabled,
        "whatsapp_endpoint": org.whatsapp_endpoint,
        "location": {
            "latitude": org.location_latitude,
            "longitude": org.location_longitude,
            "address": org.location_address,
        },
        "geofence_settings": org.geofence.to_json(),
        "advisory_types": list(org.advisory_types),
        "round_types": list(org.round_types),
        "follow_up_types": list(org.follow_up_types),
    }
