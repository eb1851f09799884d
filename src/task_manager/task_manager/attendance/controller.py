from __future__ import annotations

from datetime import date, timedelta

from flask import Flask, request

from ..common.http import (
    admin_required,
    current_org_id,
    current_role,
    current_user_id,
    json_body,
    login_required,
    ok,
    query_date,
    query_int,
)
from ..common.validators import optional_float
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_REPORT_DAYS
from .model import PunchLocation
from .service import record_to_dict


def _location_from(data: dict) -> PunchLocation:
    return PunchLocation(
        latitude=optional_float(data.get("latitude"), "Latitude"),
        longitude=optional_float(data.get("longitude"), "Longitude"),
        address=(data.get("address") or "").strip() or None,
        device_info=(data.get("device_info") or request.headers.get("User-Agent") or "")[:255] or None,
    )


def _period() -> tuple[date, date]:
    end = query_date("end_date", date.today())
    start = query_date("start_date", end - timedelta(days=DEFAULT_REPORT_DAYS - 1))
    return start, end


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/punch-in", methods=["POST"], endpoint="attendance_punch_in")
    @login_required
    def attendance_punch_in():
        record = container.attendance_service.punch_in(current_user_id(), location=_location_from(json_body()))
        return ok({"record": record_to_dict(record), "message": "Punched in"}, 201)

    @app.route("/api/attendance/punch-out", methods=["POST"], endpoint="attendance_punch_out")
    @login_required
    def attendance_punch_out():
        record = container.attendance_service.punch_out(current_user_id(), location=_location_from(json_body()))
        return ok({"record": record_to_dict(record), "message": "Punched out"})

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def attendance_today():
        return ok(container.attendance_service.today_status(current_user_id()))

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @login_required
    def attendance_history():
        limit = query_int("limit") or DEFAULT_HISTORY_LIMIT
        records = container.attendance_service.history(current_user_id(), limit=min(limit, 365))
        return ok({"records": [record_to_dict(r) for r in records]})

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_org_list")
    @admin_required
    def attendance_org_list():
        start, end = _period()
        records = container.attendance_service.list_for_org(
            current_role=current_role(),
            org_id=current_org_id(),
            start=start,
            end=end,
            user_id=query_int("user_id"),
        )
        return ok({"records": [record_to_dict(r) for r in records]})

    @app.route("/api/attendance/violations", methods=["GET"], endpoint="attendance_violations")
    @admin_required
    def attendance_violations():
        start, end = _period()
        records = container.attendance_service.geofence_violations(
            current_role=current_role(), org_id=current_org_id(), start=start, end=end
        )
        return ok({"records": [record_to_dict(r) for r in records]})

    @app.route("/api/attendance/<int:attendance_id>/override", methods=["POST"], endpoint="attendance_override")
    @admin_required
    def attendance_override(attendance_id: int):
        container.attendance_service.override_geofence(
            current_role=current_role(),
            admin_user_id=current_user_id(),
            org_id=current_org_id(),
            attendance_id=attendance_id,
            reason=json_body().get("reason", ""),
        )
        return ok({"message": "Geofence violation overridden"})

    @app.route("/api/attendance/close-stale", methods=["POST"], endpoint="attendance_close_stale")
    @admin_required
    def attendance_close_stale():
        data = json_body()
        result = container.attendance_service.close_stale_open_sessions(
            current_role=current_role(),
            admin_user_id=current_user_id(),
            org_id=current_org_id(),
            max_open_hours=data.get("max_open_hours"),
        )
        return ok(result)
