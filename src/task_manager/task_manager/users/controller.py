from __future__ import annotations

from flask import Flask, session

from ..common.http import (
    admin_required,
    current_org_id,
    current_role,
    current_user_id,
    enum_value,
    json_body,
    login_required,
    ok,
)
from ..container import Container
from ..core.enums import Role
from .service import user_to_dict


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.permanent = bool(data.get("remember_me"))

        session["user_id"] = s_user.user_id
        session["org_id"] = s_user.org_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value
        session["department"] = s_user.department

        return ok(
            {
                "user": {
                    "user_id": s_user.user_id,
                    "org_id": s_user.org_id,
                    "full_name": s_user.full_name,
                    "role": s_user.role.value,
                    "department": s_user.department,
                }
            }
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok({"message": "Logged out"})

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        return ok(
            {
                "user": {
                    "user_id": current_user_id(),
                    "org_id": current_org_id(),
                    "full_name": session.get("name"),
                    "role": session.get("role"),
                    "department": session.get("department"),
                }
            }
        )

    @app.route("/api/team", methods=["GET"], endpoint="team_list")
    @admin_required
    def team_list():
        members = container.user_service.list_members(org_id=current_org_id())
        return ok({"members": [user_to_dict(u) for u in members]})

    @app.route("/api/team", methods=["POST"], endpoint="team_add")
    @admin_required
    def team_add():
        data = json_body()
        user_id = container.user_service.add_member(
            current_role=current_role(),
            org_id=current_org_id(),
            full_name=data.get("full_name", ""),
            username=data.get("username", ""),
            password=data.get("password", ""),
            role=enum_value(Role, data.get("role"), "role", Role.STAFF),
            whatsapp_number=data.get("whatsapp_number"),
            department=data.get("department"),
        )
        return ok({"user_id": user_id, "message": "Team member added"}, 201)

    @app.route("/api/team/<int:user_id>", methods=["PUT"], endpoint="team_update")
    @admin_required
    def team_update(user_id: int):
        data = json_body()
        container.user_service.update_member(
            current_role=current_role(),
            org_id=current_org_id(),
            user_id=user_id,
            full_name=data.get("full_name", ""),
            role=enum_value(Role, data.get("role"), "role", Role.STAFF),
            whatsapp_number=data.get("whatsapp_number"),
            department=data.get("department"),
            is_active=bool(data.get("is_active", True)),
            password=data.get("password") or None,
        )
        return ok({"message": "Team member updated"})

    @app.route("/api/team/<int:user_id>/active", methods=["POST"], endpoint="team_set_active")
    @admin_required
    def team_set_active(user_id: int):
        data = json_body()
        container.user_service.set_active(
            current_role=current_role(),
            org_id=current_org_id(),
            user_id=user_id,
            is_active=bool(data.get("is_active", True)),
        )
        return ok({"message": "Status updated"})

    @app.route("/api/team/<int:user_id>", methods=["DELETE"], endpoint="team_delete")
    @admin_required
    def team_delete(user_id: int):
        container.user_service.delete_member(
            current_role=current_role(),
            current_user_id=current_user_id(),
            org_id=current_org_id(),
            user_id=user_id,
        )
        return ok({"message": "Team member deleted"})
