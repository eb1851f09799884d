"""Phone number helpers for WhatsApp delivery.

Numbers are stored in display form (``+919876543210``) and converted to the
10-digit national form the gateway expects right before sending.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote

from ..core.constants import DEFAULT_COUNTRY_CODE

_NON_DIGITS = re.compile(r"\D")


def digits_only(phone: Optional[str]) -> str:
    return _NON_DIGITS.sub("", phone or "")


def format_phone_number(phone: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    digits = digits_only(phone)
    if not digits:
        return ""

    if digits.startswith(country_code) and len(digits) > 10:
        return f"+{digits}"
    if digits.startswith("0"):
        return f"+{country_code}{digits[1:]}"
    if len(digits) == 10:
        return f"+{country_code}{digits}"
    return f"+{digits}"


def format_phone_for_gateway(phone: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    digits = digits_only(phone)

    if digits.startswith(country_code) and len(digits) == len(country_code) + 10:
        digits = digits[len(country_code):]
    if digits.startswith("0"):
        digits = digits[1:]
    if len(digits) > 10:
        digits = digits[-10:]
    return digits


def is_valid_whatsapp_number(phone: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> bool:
    return len(format_phone_for_gateway(phone, country_code)) == 10


def whatsapp_link(phone: str, message: str) -> str:
    return f"https://wa.me/{digits_only(phone)}?text={quote(message, safe='')}"
