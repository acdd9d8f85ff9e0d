"""Support contact links."""

from dataclasses import dataclass
from urllib.parse import quote

from conectalead.phone import digits
from conectalead.settings import Settings, get_settings


@dataclass
class SupportLinks:
    phone: str
    email: str
    whatsapp_url: str
    mailto_url: str


def support_links(client_name: str | None, settings: Settings | None = None) -> SupportLinks:
    settings = settings or get_settings()
    name = client_name or ""
    text = f"Olá! Sou cliente ConectaLead ({name}) e preciso de suporte."
    subject = f"Suporte ConectaLead - {name}"
    return SupportLinks(
        phone=settings.SUPPORT_PHONE,
        email=settings.SUPPORT_EMAIL,
        whatsapp_url=f"https://wa.me/{digits(settings.SUPPORT_PHONE)}?text={quote(text)}",
        mailto_url=f"mailto:{settings.SUPPORT_EMAIL}?subject={quote(subject)}",
    )
