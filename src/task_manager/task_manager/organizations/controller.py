from __future__ import annotations

from flask import Flask, request

from ..common.http import admin_required, body_date, current_org_id, current_role, json_body, login_required, ok
from ..container import Container
from ..core.exceptions import ValidationError
from .service import organization_to_dict


def register(app: Flask, container: Container) -> None:
    @app.route("/api/organization", methods=["GET"], endpoint="organization_get")
    @login_required
    def organization_get():
        org = container.organization_service.get(current_org_id())
        return ok({"organization": organization_to_dict(org)})

    @app.route("/api/organization/whatsapp", methods=["PUT"], endpoint="organization_whatsapp")
    @admin_required
    def organization_whatsapp():
        data = json_body()
        org = container.organization_service.update_whatsapp_settings(
            current_role=current_role(),
            org_id=current_org_id(),
            whatsapp_enabled=bool(data.get("whatsapp_enabled")),
            auto_alerts_enabled=bool(data.get("auto_alerts_enabled")),
            whatsapp_endpoint=data.get("whatsapp_endpoint"),
        )
        return ok({"organization": organization_to_dict(org), "message": "WhatsApp settings saved"})

    @app.route("/api/organization/departments", methods=["PUT"], endpoint="organization_departments")
    @admin_required
    def organization_departments():
        data = json_body()
        org = container.organization_service.update_departments(
            current_role=current_role(),
            org_id=current_org_id(),
            departments=data.get("departments") or [],
        )
        return ok({"organization": organization_to_dict(org), "message": "Departments saved"})

    @app.route("/api/organization/task-categories", methods=["PUT"], endpoint="organization_task_categories")
    @admin_required
    def organization_task_categories():
        data = json_body()
        org = container.organization_service.update_task_categories(
            current_role=current_role(),
            org_id=current_org_id(),
            advisory_types=data.get("advisory_types") or [],
            round_types=data.get("round_types") or [],
            follow_up_types=data.get("follow_up_types") or [],
        )
        return ok({"organization": organization_to_dict(org), "message": "Task categories saved"})

    @app.route("/api/organization/holidays", methods=["GET"], endpoint="holiday_list")
    @login_required
    def holiday_list():
        year = request.args.get("year", type=int)
        holidays = container.organization_service.list_holidays(org_id=current_org_id(), year=year)
        return ok(
            {
                "holidays": [
                    {
                        "holiday_id": h.holiday_id,
                        "date": h.holiday_date.strftime("%Y-%m-%d"),
                        "name": h.holiday_name,
                    }
                    for h in holidays
                ]
            }
        )

    @app.route("/api/organization/holidays", methods=["POST"], endpoint="holiday_add")
    @admin_required
    def holiday_add():
        data = json_body()
        holiday_date = body_date(data, "date", "Holiday date")
        if holiday_date is None:
            raise ValidationError("Holiday date is required")
        holiday_id = container.organization_service.add_holiday(
            current_role=current_role(),
            org_id=current_org_id(),
            holiday_date=holiday_date,
            holiday_name=data.get("name", ""),
        )
        return ok({"holiday_id": holiday_id}, 201)

    @app.route("/api/organization/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="holiday_delete")
    @admin_required
    def holiday_delete(holiday_id: int):
        container.organization_service.delete_holiday(
            current_role=current_role(), org_id=current_org_id(), holiday_id=holiday_id
        )
        return ok({"message": "Holiday deleted"})
