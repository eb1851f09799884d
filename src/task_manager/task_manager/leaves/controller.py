from __future__ import annotations

from flask import Flask

from ..common.http import (
    admin_required,
    body_date,
    current_org_id,
    current_role,
    current_user_id,
    enum_value,
    json_body,
    login_required,
    ok,
)
from ..container import Container
from ..core.enums import LeaveType
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    # -------- Leave requests --------
    @app.route("/api/leaves", methods=["POST"], endpoint="leave_request")
    @login_required
    def leave_request():
        data = json_body()
        start_date = body_date(data, "start_date", "Start date")
        if start_date is None:
            raise ValidationError("Start date is required")
        request_id = container.leave_service.request_leave(
            user_id=current_user_id(),
            leave_type=enum_value(LeaveType, data.get("leave_type"), "leave type", LeaveType.CASUAL),
            start_date=start_date,
            end_date=body_date(data, "end_date", "End date"),
            reason=data.get("reason", ""),
            is_emergency=bool(data.get("is_emergency")),
        )
        return ok({"request_id": request_id, "message": "Leave request submitted"}, 201)

    @app.route("/api/leaves/mine", methods=["GET"], endpoint="leave_mine")
    @login_required
    def leave_mine():
        return ok({"requests": list(container.leave_service.list_my_leaves(user_id=current_user_id()))})

    @app.route("/api/leaves/pending", methods=["GET"], endpoint="leave_pending")
    @admin_required
    def leave_pending():
        requests = container.leave_service.list_pending(current_role=current_role(), org_id=current_org_id())
        return ok({"requests": list(requests)})

    @app.route("/api/leaves/<int:request_id>/approve", methods=["POST"], endpoint="leave_approve")
    @admin_required
    def leave_approve(request_id: int):
        container.leave_service.approve_leave(
            current_role=current_role(),
            admin_user_id=current_user_id(),
            org_id=current_org_id(),
            request_id=request_id,
            admin_note=json_body().get("admin_note", ""),
        )
        return ok({"message": "Leave approved"})

    @app.route("/api/leaves/<int:request_id>/reject", methods=["POST"], endpoint="leave_reject")
    @admin_required
    def leave_reject(request_id: int):
        container.leave_service.reject_leave(
            current_role=current_role(),
            admin_user_id=current_user_id(),
            org_id=current_org_id(),
            request_id=request_id,
            admin_note=json_body().get("admin_note", ""),
        )
        return ok({"message": "Leave rejected"})

    # -------- Regularization --------
    @app.route("/api/regularizations", methods=["POST"], endpoint="regularization_request")
    @login_required
    def regularization_request():
        data = json_body()
        request_id = container.leave_service.request_regularization(
            user_id=current_user_id(),
            attendance_id=data.get("attendance_id") or 0,
            reason=data.get("reason", ""),
            requested_punch_in=data.get("requested_punch_in"),
            requested_punch_out=data.get("requested_punch_out"),
        )
        return ok({"request_id": request_id, "message": "Regularization request submitted"}, 201)

    @app.route("/api/regularizations/mine", methods=["GET"], endpoint="regularization_mine")
    @login_required
    def regularization_mine():
        requests = container.leave_service.list_my_regularizations(user_id=current_user_id())
        return ok({"requests": list(requests)})

    @app.route("/api/regularizations/pending", methods=["GET"], endpoint="regularization_pending")
    @admin_required
    def regularization_pending():
        requests = container.leave_service.list_pending_regularizations(
            current_role=current_role(), org_id=current_org_id()
        )
        return ok({"requests": list(requests)})

    @app.route("/api/regularizations/<int:request_id>/approve", methods=["POST"], endpoint="regularization_approve")
    @admin_required
    def regularization_approve(request_id: int):
        container.leave_service.approve_regularization(
            current_role=current_role(),
            admin_user_id=current_user_id(),
            org_id=current_org_id(),
            request_id=request_id,
            admin_note=json_body().get("admin_note", ""),
        )
        return ok({"message": "Regularization approved"})

    @app.route("/api/regularizations/<int:request_id>/reject", methods=["POST"], endpoint="regularization_reject")
    @admin_required
    def regularization_reject(request_id: int):
        container.leave_service.reject_regularization(
            current_role=current_role(),
            admin_user_id=current_user_id(),
            org_id=current_org_id(),
            request_id=request_id,
            admin_note=json_body().get("admin_note", ""),
        )
        return ok({"message": "Regularization rejected"})
