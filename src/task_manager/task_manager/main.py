from __future__ import annotations

import importlib
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .core.constants import DEFAULT_SESSION_DAYS
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DeliveryError,
    GeofenceViolationError,
    NotFoundError,
    ValidationError,
)
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .geofence.controller import register as register_geofence
from .leaves.controller import register as register_leaves
from .notifications.controller import register as register_notifications
from .organizations.controller import register as register_organizations
from .reports.controller import register as register_reports
from .scheduler import start_scheduler
from .shifts.controller import register as register_shifts
from .tasks.controller import register as register_tasks
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[3]


def _error(message: str, status: int, **extra):
    return jsonify({"success": False, "message": message, **extra}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return _error(str(e), 400)

    @app.errorhandler(AuthenticationError)
    def handle_authentication(e: AuthenticationError):
        return _error(str(e), 401)

    @app.errorhandler(AuthorizationError)
    def handle_authorization(e: AuthorizationError):
        return _error(str(e), 403)

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return _error(str(e), 404)

    @app.errorhandler(GeofenceViolationError)
    def handle_geofence(e: GeofenceViolationError):
        return _error(str(e), 422, distance=round(e.distance), threshold=round(e.threshold))

    @app.errorhandler(DeliveryError)
    def handle_delivery(e: DeliveryError):
        logger.warning("WhatsApp delivery failed: %s", e)
        return _error(str(e), 502)

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        return _error(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error")
        message = str(e) if app.config.get("DEBUG") else "Something went wrong. Please try again."
        return _error(message, 500)


def _prepare_database(settings, db_config: dict) -> None:
    auto_init_db = bool(getattr(settings, "AUTO_INIT_DB", False))
    auto_seed_db = bool(getattr(settings, "AUTO_SEED_DB", False))
    if auto_init_db:
        apply_schema(db_config, schema_path=ROOT_DIR / "database" / "schema.sql")
        logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
    if auto_seed_db:
        apply_seed_sql(db_config, seed_path=ROOT_DIR / "database" / "seed.sql")
        ensure_demo_users(db_config)
        logger.info("Demo seed ready")


def _settings_dict(settings) -> dict:
    return {name: getattr(settings, name) for name in dir(settings) if name.isupper()}


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["JSON_SORT_KEYS"] = False
    app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        _prepare_database(settings, db_config)
        container = build_container(db_config=db_config, settings=_settings_dict(settings))

        # Under the reloader only the child process runs jobs.
        reloader_parent = app.config["DEBUG"] and os.environ.get("WERKZEUG_RUN_MAIN") != "true"
        if getattr(settings, "ENABLE_SCHEDULER", False) and not reloader_parent:
            start_scheduler(container, timezone=getattr(settings, "SCHEDULER_TIMEZONE", "UTC"))

    app.extensions["task_manager"] = container
    register_error_handlers(app)

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"success": True, "status": "ok"})

    register_users(app, container)
    register_organizations(app, container)
    register_geofence(app, container)
    register_shifts(app, container)
    register_attendance(app, container)
    register_leaves(app, container)
    register_tasks(app, container)
    register_notifications(app, container)
    register_reports(app, container)

    return app
