from datetime import date

import pytest

from src.task_manager.task_manager.core.enums import EnforcementMode, Role
from src.task_manager.task_manager.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.task_manager.task_manager.organizations.service import organization_to_dict


def test_whatsapp_settings(world):
    service = world.container.organization_service
    org = service.update_whatsapp_settings(
        current_role=Role.ADMIN,
        org_id=1,
        whatsapp_enabled=False,
        auto_alerts_enabled=True,
        whatsapp_endpoint=" https://gateway.example/send ",
    )
    assert not org.whatsapp_enabled
    assert org.whatsapp_endpoint == "https://gateway.example/send"

    with pytest.raises(ValidationError):
        service.update_whatsapp_settings(
            current_role=Role.ADMIN, org_id=1, whatsapp_enabled=True, auto_alerts_enabled=True, whatsapp_endpoint="ftp://x"
        )


def test_departments_are_deduplicated(world):
    org = world.container.organization_service.update_departments(
        current_role=Role.ADMIN, org_id=1, departments=["Medical", " medical ", "Pharmacy", ""]
    )
    assert org.departments == ("Medical", "Pharmacy")

    with pytest.raises(ValidationError):
        world.container.organization_service.update_departments(current_role=Role.ADMIN, org_id=1, departments=[])


def test_staff_cannot_change_settings(world):
    with pytest.raises(AuthorizationError):
        world.container.organization_service.update_departments(
            current_role=Role.STAFF, org_id=1, departments=["Medical"]
        )


def test_update_geofence(world):
    service = world.container.organization_service
    org = service.update_geofence(
        current_role=Role.ADMIN,
        org_id=1,
        latitude="18.52",
        longitude="73.85",
        address="Pune branch",
        enforcement_mode="warning",
        distance_threshold_meters="200",
    )
    assert org.location_latitude == 18.52
    assert org.geofence.enforcement_mode == EnforcementMode.WARNING
    assert org.geofence.distance_threshold_meters == 200.0
    assert organization_to_dict(org)["geofence_settings"]["enforcement_mode"] == "warning"


@pytest.mark.parametrize(
    "changes",
    [
        {"latitude": "18.5", "longitude": None},
        {"latitude": "95", "longitude": "73"},
        {"enforcement_mode": "lenient"},
        {"distance_threshold_meters": "0"},
    ],
)
def test_update_geofence_validation(world, changes):
    kw = dict(current_role=Role.ADMIN, org_id=1, latitude="19.07", longitude="72.87")
    kw.update(changes)
    with pytest.raises(ValidationError):
        world.container.organization_service.update_geofence(**kw)


def test_holidays(world):
    service = world.container.organization_service
    hid = service.add_holiday(current_role=Role.ADMIN, org_id=1, holiday_date=date(2026, 3, 3), holiday_name="Holi")
    service.add_holiday(current_role=Role.ADMIN, org_id=1, holiday_date=date(2027, 1, 26), holiday_name="Republic Day")

    with pytest.raises(ValidationError):
        service.add_holiday(current_role=Role.ADMIN, org_id=1, holiday_date=date(2026, 3, 3), holiday_name="Again")

    assert [h.holiday_name for h in service.list_holidays(org_id=1, year=2026)] == ["Holi"]
    assert len(service.list_holidays(org_id=1)) == 2

    service.delete_holiday(current_role=Role.ADMIN, org_id=1, holiday_id=hid)
    with pytest.raises(NotFoundError):
        service.delete_holiday(current_role=Role.ADMIN, org_id=1, holiday_id=hid)
