from __future__ import annotations

from datetime import date

from flask import Flask

from ..common.http import (
    admin_required,
    body_date,
    current_org_id,
    current_role,
    current_user_id,
    json_body,
    login_required,
    ok,
    query_date,
)
from ..container import Container
from ..core.exceptions import ValidationError
from .service import shift_to_dict


def _shift_payload(data: dict) -> dict:
    return {
        "shift_name": data.get("shift_name", ""),
        "start_time": data.get("start_time", ""),
        "end_time": data.get("end_time", ""),
        "break_minutes": data.get("break_minutes"),
        "late_threshold_minutes": data.get("late_threshold_minutes"),
        "early_out_threshold_minutes": data.get("early_out_threshold_minutes"),
        "weekly_off_days": data.get("weekly_off_days"),
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/shifts", methods=["GET"], endpoint="shift_list")
    @login_required
    def shift_list():
        shifts = container.shift_service.list_shifts(org_id=current_org_id())
        return ok({"shifts": [shift_to_dict(s) for s in shifts]})

    @app.route("/api/shifts", methods=["POST"], endpoint="shift_create")
    @admin_required
    def shift_create():
        shift_id = container.shift_service.create_shift(
            current_role=current_role(), org_id=current_org_id(), **_shift_payload(json_body())
        )
        return ok({"shift_id": shift_id, "message": "Shift created"}, 201)

    @app.route("/api/shifts/<int:shift_id>", methods=["PUT"], endpoint="shift_update")
    @admin_required
    def shift_update(shift_id: int):
        container.shift_service.update_shift(
            current_role=current_role(), org_id=current_org_id(), shift_id=shift_id, **_shift_payload(json_body())
        )
        return ok({"message": "Shift updated"})

    @app.route("/api/shifts/<int:shift_id>", methods=["DELETE"], endpoint="shift_deactivate")
    @admin_required
    def shift_deactivate(shift_id: int):
        container.shift_service.deactivate_shift(current_role=current_role(), org_id=current_org_id(), shift_id=shift_id)
        return ok({"message": "Shift deactivated"})

    @app.route("/api/shifts/assign", methods=["POST"], endpoint="shift_assign")
    @admin_required
    def shift_assign():
        data = json_body()
        effective_from = body_date(data, "effective_from", "Effective from")
        if effective_from is None:
            raise ValidationError("Effective from date is required")
        assignment_id = container.shift_service.assign_shift(
            current_role=current_role(),
            org_id=current_org_id(),
            assigned_by=current_user_id(),
            user_id=data.get("user_id") or 0,
            shift_id=data.get("shift_id") or 0,
            effective_from=effective_from,
            effective_to=body_date(data, "effective_to", "Effective to"),
        )
        return ok({"assignment_id": assignment_id, "message": "Shift assigned"}, 201)

    @app.route("/api/shifts/roster", methods=["GET"], endpoint="shift_roster")
    @admin_required
    def shift_roster():
        on_date = query_date("date", date.today())
        roster = container.shift_service.roster(org_id=current_org_id(), on_date=on_date)
        return ok({"date": on_date.strftime("%Y-%m-%d"), "roster": list(roster)})

    @app.route("/api/shifts/mine", methods=["GET"], endpoint="shift_mine")
    @login_required
    def shift_mine():
        shift = container.shift_service.current_shift(user_id=current_user_id(), on_date=date.today())
        history = container.shift_service.assignment_history(user_id=current_user_id())
        return ok(
            {
                "shift": shift_to_dict(shift) if shift else None,
                "assignments": [
                    {
                        "assignment_id": a.assignment_id,
                        "shift_id": a.shift_id,
                        "effective_from": a.effective_from.strftime("%Y-%m-%d"),
                        "effective_to": a.effective_to.strftime("%Y-%m-%d") if a.effective_to else None,
                    }
                    for a in history
                ],
            }
        )
