"""
Enumerations for ConectaLead entities.

One enum per concept. Stored values follow the vocabulary the admin
screens write (Portuguese for client status, English for payments and
follow-ups).
"""

from enum import Enum


class Role(str, Enum):
    """Role attached to an authenticated identity."""

    ADMIN = "admin"
    CLIENT = "client"


class ClientStatus(str, Enum):
    """Subscription status of a tenant."""

    ATIVO = "ativo"
    INATIVO = "inativo"
    VENCIDO = "vencido"
    PENDENTE = "pendente"

    @classmethod
    def parse(cls, value: "str | ClientStatus | None") -> "ClientStatus | None":
        """
        Parse either vocabulary (ativo/active, vencido/expired, ...).

        Values outside both vocabularies parse to None, which keeps the
        tenant unrestricted.
        """
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in _CLIENT_STATUS_SYNONYMS:
            return _CLIENT_STATUS_SYNONYMS[key]
        try:
            return cls(key)
        except ValueError:
            return None

    @property
    def is_restricted(self) -> bool:
        """Whether a tenant with this status loses access to the app."""
        return self in (ClientStatus.INATIVO, ClientStatus.VENCIDO)


_CLIENT_STATUS_SYNONYMS = {
    "active": ClientStatus.ATIVO,
    "inactive": ClientStatus.INATIVO,
    "expired": ClientStatus.VENCIDO,
    "pending": ClientStatus.PENDENTE,
}


class PlanType(str, Enum):
    """Billing plan of a tenant."""

    MENSAL = "mensal"
    TRIMESTRAL = "trimestral"
    ANUAL = "anual"


class PaymentStatus(str, Enum):
    """
    Status of a payment record.

    LATE is never stored: it is the display state of a PENDING payment
    whose due date has passed (see services.payments.display_status).
    """

    PAID = "paid"
    PENDING = "pending"
    CANCELLED = "cancelled"
    LATE = "late"

    @classmethod
    def parse(cls, value: "str | PaymentStatus") -> "PaymentStatus":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        return _PAYMENT_STATUS_SYNONYMS.get(key) or cls(key)


_PAYMENT_STATUS_SYNONYMS = {
    "pago": PaymentStatus.PAID,
    "pendente": PaymentStatus.PENDING,
    "atrasado": PaymentStatus.LATE,
    "cancelado": PaymentStatus.CANCELLED,
    "canceled": PaymentStatus.CANCELLED,
}


class FollowupStatus(str, Enum):
    """Status of a scheduled follow-up message."""

    SCHEDULED = "scheduled"
    SENT = "sent"
    CANCELLED = "cancelled"


class ColumnColor(str, Enum):
    """Fixed palette for Kanban columns and labels."""

    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    PURPLE = "purple"
    RED = "red"
    PINK = "pink"
    INDIGO = "indigo"
    TEAL = "teal"
    ORANGE = "orange"
    GRAY = "gray"

    @classmethod
    def parse(cls, value: "str | ColumnColor | None") -> "ColumnColor":
        """Colors outside the palette (hex codes, blanks) render as blue."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.BLUE


class WebhookStatus(str, Enum):
    """Status of a tenant's inbound lead webhook."""

    ATIVO = "ativo"
    AGUARDANDO = "aguardando"
    ERRO = "erro"

    @classmethod
    def parse(cls, value: "str | WebhookStatus | None") -> "WebhookStatus | None":
        """Unknown values show as aguardando."""
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.AGUARDANDO


class WhatsAppSessionStatus(str, Enum):
    """Connection state of a tenant's WhatsApp session."""

    LOADING = "loading"
    PENDING = "pending"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class SessionEvent(str, Enum):
    """Events emitted by the authentication service."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    USER_UPDATED = "USER_UPDATED"
