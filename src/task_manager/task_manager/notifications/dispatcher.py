from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.phone import format_phone_for_gateway
from ..core.constants import DEFAULT_COUNTRY_CODE, WHATSAPP_BATCH_LIMIT, WHATSAPP_SEND_DELAY_SECONDS, WHATSAPP_TIER_BATCH_LIMIT
from ..core.enums import NotificationTier, NotificationType
from ..core.exceptions import DeliveryError
from .model import TIER_TYPES, BatchResult, push_types
from .repository import NotificationRepository
from .whatsapp_client import WhatsAppClient

logger = logging.getLogger(__name__)


class WhatsAppDispatcher:
    """Drain the WhatsApp queue one message at a time.

    Messages go out oldest first with a fixed pause between sends. A failed
    send is marked processed together with its error and is not retried.
    """

    def __init__(
        self,
        notifications: NotificationRepository,
        client: WhatsAppClient,
        *,
        send_delay_seconds: float = WHATSAPP_SEND_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        country_code: str = DEFAULT_COUNTRY_CODE,
    ):
        self._notifications = notifications
        self._client = client
        self._delay = float(send_delay_seconds)
        self._sleep = sleep
        self._country_code = country_code

    def process_batch(
        self,
        *,
        limit: int = WHATSAPP_BATCH_LIMIT,
        types: Optional[Sequence[NotificationType]] = None,
        now: Optional[datetime] = None,
    ) -> BatchResult:
        now = now or datetime.now()
        types = list(types or push_types())
        # rows of organizations that cannot send stay queued without using up the batch
        pending = self._notifications.list_pending_whatsapp(
            now=now, types=types, limit=int(limit), deliverable_only=True
        )
        held = self._notifications.count_held_whatsapp(now=now, types=types)
        if held:
            logger.info("WhatsApp queue: %s notification(s) held for organizations with WhatsApp disabled", held)
        if not pending:
            return BatchResult(held=held)

        sent = 0
        failed = 0
        errors: list[str] = []
        attempted = False

        for item in pending:
            phone = format_phone_for_gateway(item.whatsapp_number, self._country_code)
            if len(phone) != 10:
                error = f"invalid WhatsApp number {item.whatsapp_number!r}"
                failed += 1
                errors.append(f"Notification {item.notification_id}: {error}")
                self._notifications.mark_whatsapp_failed(item.notification_id, error=error, at=datetime.now())
                continue

            if attempted and self._delay > 0:
                self._sleep(self._delay)
            attempted = True

            try:
                message_id = self._client.send(
                    phone_number=phone,
                    message=item.whatsapp_message,
                    organization_id=item.org_id,
                    notification_id=item.notification_id,
                    title=item.title,
                    endpoint=item.whatsapp_endpoint,
                )
            except DeliveryError as exc:
                failed += 1
                errors.append(f"Notification {item.notification_id}: {exc}")
                self._notifications.mark_whatsapp_failed(item.notification_id, error=str(exc), at=datetime.now())
                continue

            self._notifications.mark_whatsapp_sent(item.notification_id, message_id=message_id, at=datetime.now())
            sent += 1

        logger.info("WhatsApp batch: processed=%s sent=%s failed=%s", len(pending), sent, failed)
        return BatchResult(processed=len(pending), sent=sent, failed=failed, held=held, errors=tuple(errors))

    def process_high_priority(self, *, limit: int = WHATSAPP_TIER_BATCH_LIMIT, now: Optional[datetime] = None) -> BatchResult:
        return self.process_batch(limit=limit, types=TIER_TYPES[NotificationTier.HIGH], now=now)

    def process_medium_priority(self, *, limit: int = WHATSAPP_TIER_BATCH_LIMIT, now: Optional[datetime] = None) -> BatchResult:
        return self.process_batch(limit=limit, types=TIER_TYPES[NotificationTier.MEDIUM], now=now)
