"""Phone helpers for WhatsApp links."""

import re
from urllib.parse import quote

COUNTRY_CODE = "55"


def digits(phone: str | None) -> str:
    return re.sub(r"\D", "", phone or "")


def normalize_phone(phone: str | None) -> str:
    """Digits only, prefixed with the Brazilian country code when missing."""
    number = digits(phone)
    if not number:
        return ""
    return number if number.startswith(COUNTRY_CODE) else f"{COUNTRY_CODE}{number}"


def whatsapp_link(phone: str | None, text: str | None = None) -> str:
    """wa.me link for a phone number, optionally with a prefilled message."""
    url = f"https://wa.me/{normalize_phone(phone)}"
    if text:
        url += f"?text={quote(text)}"
    return url
