from __future__ import annotations

import logging

from flask import Flask, request

from ..common.http import (
    admin_required,
    current_org_id,
    current_role,
    current_user_id,
    json_body,
    login_required,
    ok,
    query_int,
)
from ..container import Container
from ..core.enums import NotificationTier
from ..core.exceptions import ValidationError
from .service import notification_to_dict

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    # -------- In-app notifications --------
    @app.route("/api/notifications", methods=["GET"], endpoint="notification_list")
    @login_required
    def notification_list():
        unread_only = (request.args.get("unread") or "").lower() in ("1", "true", "yes")
        limit = min(query_int("limit") or 50, 200)
        items = container.notification_service.list_for_user(
            user_id=current_user_id(), unread_only=unread_only, limit=limit
        )
        return ok(
            {
                "notifications": [notification_to_dict(n) for n in items],
                "unread_count": container.notification_service.unread_count(user_id=current_user_id()),
            }
        )

    @app.route("/api/notifications/<int:notification_id>/read", methods=["POST"], endpoint="notification_read")
    @login_required
    def notification_read(notification_id: int):
        container.notification_service.mark_read(user_id=current_user_id(), notification_id=notification_id)
        return ok()

    @app.route("/api/notifications/read-all", methods=["POST"], endpoint="notification_read_all")
    @login_required
    def notification_read_all():
        updated = container.notification_service.mark_all_read(user_id=current_user_id())
        return ok({"updated": updated})

    # -------- WhatsApp queue --------
    @app.route("/api/whatsapp/stats", methods=["GET"], endpoint="whatsapp_stats")
    @admin_required
    def whatsapp_stats():
        stats = container.notification_service.stats(current_role=current_role(), org_id=current_org_id())
        return ok({"stats": stats})

    @app.route("/api/whatsapp/pending", methods=["GET"], endpoint="whatsapp_pending")
    @admin_required
    def whatsapp_pending():
        kwargs = {"current_role": current_role(), "org_id": current_org_id()}
        limit = query_int("limit")
        if limit:
            kwargs["limit"] = min(limit, 200)
        return ok({"pending": container.notification_service.pending(**kwargs)})

    @app.route("/api/whatsapp/process", methods=["POST"], endpoint="whatsapp_process")
    @admin_required
    def whatsapp_process():
        tier = (json_body().get("tier") or request.args.get("tier") or "").lower()
        dispatcher = container.whatsapp_dispatcher

        if tier == NotificationTier.HIGH.value:
            result = dispatcher.process_high_priority()
        elif tier == NotificationTier.MEDIUM.value:
            result = dispatcher.process_medium_priority()
        elif tier in ("", "all"):
            result = dispatcher.process_batch(limit=container.whatsapp_batch_limit)
        else:
            raise ValidationError("Tier must be high, medium or all")

        logger.info("Manual WhatsApp run by user %s: %s", current_user_id(), result.to_dict())
        return ok({"result": result.to_dict()})

    @app.route("/api/whatsapp/test", methods=["POST"], endpoint="whatsapp_test")
    @admin_required
    def whatsapp_test():
        result = container.notification_service.send_test_message(
            current_role=current_role(),
            org_id=current_org_id(),
            phone_number=json_body().get("phone_number", ""),
        )
        return ok({"message_id": result["message_id"], "message": "Test message sent"})

    @app.route("/api/whatsapp/overdue-alerts", methods=["POST"], endpoint="whatsapp_overdue_alerts")
    @admin_required
    def whatsapp_overdue_alerts():
        queued = container.overdue_alert_service.schedule_alerts()
        return ok({"queued": queued})
