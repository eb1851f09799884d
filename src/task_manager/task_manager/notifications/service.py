from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.phone import format_phone_for_gateway, format_phone_number, is_valid_whatsapp_number, whatsapp_link
from ..core.constants import PENDING_PREVIEW_LIMIT
from ..core.enums import NotificationType, Role
from ..core.exceptions import AuthorizationError, DeliveryError, NotFoundError, ValidationError
from ..organizations.repository import OrganizationRepository
from .messages import connectivity_test_message
from .model import DISPLAY_NAMES, Notification, push_types, tier_for
from .repository import NotificationRepository
from .whatsapp_client import WhatsAppClient

logger = logging.getLogger(__name__)


class NotificationService:
    """In-app notifications plus the WhatsApp queue they feed."""

    def __init__(
        self,
        notifications: NotificationRepository,
        organizations: OrganizationRepository,
        *,
        client: Optional[WhatsAppClient] = None,
    ):
        self._notifications = notifications
        self._organizations = organizations
        self._client = client

    def notify(
        self,
        *,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        task_id: Optional[int] = None,
        whatsapp_number: Optional[str] = None,
        whatsapp_message: Optional[str] = None,
        scheduled_for: Optional[datetime] = None,
    ) -> int:
        """Store an in-app notification; it is queued for WhatsApp when it has a number and a message."""

        number = format_phone_number(whatsapp_number) or None
        return self._notifications.create(
            user_id=int(user_id),
            notification_type=notification_type,
            title=title,
            message=message,
            task_id=task_id,
            whatsapp_number=number,
            whatsapp_message=whatsapp_message if number else None,
            scheduled_for=scheduled_for,
        )

    def list_for_user(self, *, user_id: int, unread_only: bool = False, limit: int = 50) -> Sequence[Notification]:
        return self._notifications.list_for_user(int(user_id), unread_only=unread_only, limit=int(limit))

    def unread_count(self, *, user_id: int) -> int:
        return self._notifications.unread_count(int(user_id))

    def mark_read(self, *, user_id: int, notification_id: int) -> None:
        if not self._notifications.mark_read(int(user_id), int(notification_id)):
            raise NotFoundError("Notification not found")

    def mark_all_read(self, *, user_id: int) -> int:
        return self._notifications.mark_all_read(int(user_id))

    def stats(self, *, current_role: Role, org_id: int) -> dict:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can view WhatsApp statistics")

        counts = self._notifications.whatsapp_counts(int(org_id))
        total = counts["total"]
        counts["success_rate"] = round(counts["sent"] / total * 100) if total else 0
        return counts

    def pending(self, *, current_role: Role, org_id: int, limit: int = PENDING_PREVIEW_LIMIT, now: Optional[datetime] = None) -> list[dict]:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can view the WhatsApp queue")

        rows = self._notifications.list_pending_whatsapp(
            now=now or datetime.now(), types=push_types(), limit=int(limit), org_id=int(org_id)
        )
        return [
            {
                "notification_id": r.notification_id,
                "recipient": r.full_name,
                "whatsapp_number": r.whatsapp_number,
                "type": r.notification_type.value,
                "type_label": DISPLAY_NAMES.get(r.notification_type, r.notification_type.value),
                "tier": tier_for(r.notification_type).value,
                "title": r.title,
                "task_title": r.task_title,
                "task_priority": r.task_priority,
                "task_due_date": r.task_due_date.strftime("%Y-%m-%d %H:%M") if r.task_due_date else None,
                "created_at": r.created_at.strftime("%Y-%m-%d %H:%M"),
                "wa_link": whatsapp_link(r.whatsapp_number, r.whatsapp_message),
            }
            for r in rows
        ]

    def send_test_message(
        self,
        *,
        current_role: Role,
        org_id: int,
        phone_number: str,
        now: Optional[datetime] = None,
    ) -> dict:
        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can send test messages")
        if not is_valid_whatsapp_number(phone_number):
            raise ValidationError("WhatsApp number must have 10 digits")
        if self._client is None:
            raise DeliveryError("WhatsApp gateway is not configured")

        org = self._organizations.get_by_id(int(org_id))
        if not org:
            raise NotFoundError("Organization not found")

        message_id = self._client.send(
            phone_number=format_phone_for_gateway(phone_number),
            message=connectivity_test_message(org_name=org.org_name, now=now or datetime.now()),
            organization_id=org.org_id,
            title="Connectivity test",
            endpoint=org.whatsapp_endpoint,
        )
        logger.info("WhatsApp test message sent for org %s (id=%s)", org.org_id, message_id)
        return {"success": True, "message_id": message_id}


def notification_to_dict(n: Notification) -> dict:
    return {
        "notification_id": n.notification_id,
        "type": n.notification_type.value,
        "title": n.title,
        "message": n.message,
        "task_id": n.task_id,
        "read": n.is_read,
        "created_at": n.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        "whatsapp": {
            "number": n.whatsapp_number,
            # failed sends are stored processed with their error
            "sent": n.whatsapp_sent and n.whatsapp_error is None,
            "sent_at": n.whatsapp_sent_at.strftime("%Y-%m-%d %H:%M:%S") if n.whatsapp_sent_at else None,
            "error": n.whatsapp_error,
        },
    }
