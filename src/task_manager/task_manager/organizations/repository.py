from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import GeofenceSettings, Holiday, Organization


class OrganizationRepository(Protocol):
    def get_by_id(self, org_id: int) -> Optional[Organization]:
        raise NotImplementedError

    def update_whatsapp_settings(
        self,
        org_id: int,
        *,
        whatsapp_enabled: bool,
        auto_alerts_enabled: bool,
        whatsapp_endpoint: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def update_departments(self, org_id: int, departments: Sequence[str]) -> bool:
        raise NotImplementedError

    def update_task_categories(
        self,
        org_id: int,
        *,
        advisory_types: Sequence[str],
        round_types: Sequence[str],
        follow_up_types: Sequence[str],
    ) -> bool:
        raise NotImplementedError

    def update_geofence(
        self,
        org_id: int,
        *,
        latitude: Optional[float],
        longitude: Optional[float],
        address: Optional[str],
        settings: GeofenceSettings,
    ) -> bool:
        raise NotImplementedError

    def list_holidays(self, org_id: int, *, start: Optional[date] = None, end: Optional[date] = None) -> Sequence[Holiday]:
        raise NotImplementedError

    def add_holiday(self, org_id: int, *, holiday_date: date, holiday_name: str) -> int:
        raise NotImplementedError

    def delete_holiday(self, org_id: int, holiday_id: int) -> bool:
        raise NotImplementedError

    def is_holiday(self, org_id: int, on_date: date) -> bool:
        raise NotImplementedError
