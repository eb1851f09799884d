from __future__ import annotations

from flask import Flask

from ..common.http import admin_required, current_org_id, current_role, json_body, ok
from ..common.validators import require_coordinate
from ..container import Container
from ..organizations.service import organization_to_dict


def register(app: Flask, container: Container) -> None:
    @app.route("/api/geofence", methods=["PUT"], endpoint="geofence_update")
    @admin_required
    def geofence_update():
        data = json_body()
        org = container.organization_service.update_geofence(
            current_role=current_role(),
            org_id=current_org_id(),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            address=data.get("address"),
            enabled=bool(data.get("enabled", True)),
            enforcement_mode=data.get("enforcement_mode") or "strict",
            distance_threshold_meters=data.get("distance_threshold_meters"),
            allow_admin_override=bool(data.get("allow_admin_override", True)),
        )
        return ok({"organization": organization_to_dict(org), "message": "Geofence settings saved"})

    @app.route("/api/geofence/preview", methods=["POST"], endpoint="geofence_preview")
    @admin_required
    def geofence_preview():
        data = json_body()
        lat, lon = require_coordinate(data.get("latitude"), data.get("longitude"))
        preview = container.geofence_service.preview(org_id=current_org_id(), latitude=lat, longitude=lon)
        return ok({"preview": preview})
