"""Request helpers shared by the JSON controllers."""

from __future__ import annotations

from datetime import date, datetime
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import ValidationError
from .datetime_utils import parse_optional_date, parse_optional_datetime


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue"}), 401
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue"}), 401
        if not Role(session.get("role")).is_admin:
            return jsonify({"success": False, "message": "Administrator access required"}), 403
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> int:
    return int(session["user_id"])


def current_org_id() -> int:
    return int(session["org_id"])


def current_role() -> Role:
    return Role(session.get("role"))


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def ok(payload: Optional[dict] = None, status: int = 200):
    return jsonify({"success": True, **(payload or {})}), status


def enum_value(enum_cls, value: Any, field_name: str, default=None):
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {field_name}: {value}")


def query_date(name: str, default: Optional[date] = None) -> Optional[date]:
    return parse_optional_date(request.args.get(name), name) or default


def body_date(data: dict, name: str, label: str) -> Optional[date]:
    return parse_optional_date(data.get(name), label)


def body_datetime(data: dict, name: str, label: str) -> Optional[datetime]:
    return parse_optional_datetime(data.get(name), label)


def query_int(name: str) -> Optional[int]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a whole number")
