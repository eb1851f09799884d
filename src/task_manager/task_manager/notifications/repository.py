from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import NotificationType
from .model import Notification, PendingWhatsApp


class NotificationRepository(Protocol):
    def create(
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
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, unread_only: bool = False, limit: int = 50) -> Sequence[Notification]:
        raise NotImplementedError

    def mark_read(self, user_id: int, notification_id: int) -> bool:
        raise NotImplementedError

    def mark_all_read(self, user_id: int) -> int:
        raise NotImplementedError

    def unread_count(self, user_id: int) -> int:
        raise NotImplementedError

    def list_pending_whatsapp(
        self,
        *,
        now: datetime,
        types: Sequence[NotificationType],
        limit: int,
        org_id: Optional[int] = None,
        deliverable_only: bool = False,
    ) -> Sequence[PendingWhatsApp]:
        """Unsent rows with a number and a message, due now, oldest first.

        With ``deliverable_only`` rows whose organization has WhatsApp disabled
        (or that have no organization) are left out.
        """

        raise NotImplementedError

    def count_held_whatsapp(self, *, now: datetime, types: Sequence[NotificationType]) -> int:
        """Due rows that stay queued because their organization cannot send."""

        raise NotImplementedError

    def mark_whatsapp_sent(self, notification_id: int, *, message_id: Optional[str], at: datetime) -> bool:
        raise NotImplementedError

    def mark_whatsapp_failed(self, notification_id: int, *, error: str, at: datetime) -> bool:
        """Flag the row processed with its error so the queue never retries it."""

        raise NotImplementedError

    def whatsapp_counts(self, org_id: int) -> dict:
        """``{"total", "sent", "failed", "pending"}`` over rows that carry a WhatsApp number."""

        raise NotImplementedError
