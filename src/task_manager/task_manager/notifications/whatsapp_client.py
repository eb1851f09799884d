from __future__ import annotations

import logging
from typing import Optional

import requests

from ..core.constants import WHATSAPP_TIMEOUT_SECONDS
from ..core.exceptions import DeliveryError

logger = logging.getLogger(__name__)


class WhatsAppClient:
    """HTTP client for the WhatsApp gateway.

    The gateway accepts a JSON POST authenticated with an ``X-Api-Key`` header
    and answers ``{"success": true, "messageId": "..."}``.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        *,
        timeout: float = WHATSAPP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._api_url = api_url
        self._api_key = api_key
        self._timeout = timeout
        self._http = session or requests.Session()
        self._http.headers.update({"Content-Type": "application/json"})

    @property
    def configured(self) -> bool:
        return bool(self._api_url and self._api_key)

    def send(
        self,
        *,
        phone_number: str,
        message: str,
        organization_id: Optional[int] = None,
        notification_id: Optional[int] = None,
        title: Optional[str] = None,
        endpoint: Optional[str] = None,
    ) -> Optional[str]:
        """Send one message; return the gateway's message id. Raise DeliveryError on failure."""

        url = endpoint or self._api_url
        if not url or not self._api_key:
            raise DeliveryError("WhatsApp gateway is not configured")

        payload = {
            "phoneNumber": phone_number,
            "message": message,
            "organizationId": organization_id,
            "notificationId": notification_id,
            "title": title,
            "type": "batch-notification",
        }

        try:
            response = self._http.post(
                url,
                json=payload,
                headers={"X-Api-Key": self._api_key},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.warning("WhatsApp gateway unreachable: %s", exc)
            raise DeliveryError(f"Gateway request failed: {exc}") from exc

        if not response.ok:
            raise DeliveryError(
                f"Gateway returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            body = {}

        if body.get("success") is False:
            raise DeliveryError(str(body.get("error") or body.get("message") or "Gateway rejected the message"))

        return body.get("messageId") or body.get("message_id")
