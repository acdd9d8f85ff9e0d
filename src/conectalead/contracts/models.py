"""
Entity models.

Rows come back from the gateway as plain dicts; these models give them
types. Unknown keys are ignored so extra backend columns never break
parsing. Timestamps are normalised to naive UTC, dates accept either a
date string or a full timestamp.
"""

import logging
from datetime import date, datetime, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from conectalead.contracts.enums import (
    ClientStatus,
    ColumnColor,
    FollowupStatus,
    PaymentStatus,
    PlanType,
    Role,
    WebhookStatus,
)

logger = logging.getLogger(__name__)


def _parse_client_status(value: Any) -> ClientStatus | None:
    status = ClientStatus.parse(value)
    if status is None and value not in (None, ""):
        logger.warning(f"Unknown client status {value!r}, treating as unset")
    return status



def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _to_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


UtcDateTime = Annotated[datetime, AfterValidator(_to_naive_utc)]
DateOnly = Annotated[date, BeforeValidator(_to_date)]


class Entity(BaseModel):
    """Base for all rows."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_row(self, *fields: str) -> dict[str, Any]:
        """Dump selected (or all persisted) fields for a write."""
        data = self.model_dump(mode="json", exclude=self._transient_fields())
        if fields:
            return {k: v for k, v in data.items() if k in fields}
        return data

    @classmethod
    def _transient_fields(cls) -> set[str]:
        return set()


# =============================================================================
# Auth
# =============================================================================


class Identity(BaseModel):
    """Authenticated account as reported by the auth service."""

    id: str
    email: str
    role: Role | None = None


class AuthSession(BaseModel):
    """Session returned by sign-in."""

    access_token: str
    refresh_token: str | None = None
    expires_at: UtcDateTime | None = None
    user: Identity


# =============================================================================
# Tenant
# =============================================================================


class Client(Entity):
    """A client company (tenant)."""

    id: str
    name: str
    email: str | None = None
    whatsapp: str | None = None
    cnpj: str | None = None
    plan_type: PlanType | None = PlanType.MENSAL
    status: ClientStatus | None = None
    expiration_date: DateOnly | None = None

    # Billing
    billing_base_date: DateOnly | None = None
    billing_day: int | None = None
    billing_message: str | None = None
    billing_automation_enabled: bool = False
    initial_fee: float = 0.0
    monthly_fee: float = 0.0
    next_due_date: DateOnly | None = None
    last_payment_date: DateOnly | None = None
    payment_confirmed: bool = False

    # Inbound lead webhook
    webhook_url: str | None = None
    webhook_status: WebhookStatus | None = None

    created_at: UtcDateTime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> ClientStatus | None:
        return _parse_client_status(value)

    @field_validator("webhook_status", mode="before")
    @classmethod
    def _parse_webhook_status(cls, value: Any) -> WebhookStatus | None:
        return WebhookStatus.parse(value)

    @field_validator("initial_fee", "monthly_fee", mode="before")
    @classmethod
    def _none_to_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("billing_automation_enabled", "payment_confirmed", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value


# =============================================================================
# Kanban
# =============================================================================


class Label(Entity):
    """Free-text tag a tenant attaches to leads."""

    id: str
    name: str
    color: str = "blue"
    client_id: str


class Lead(Entity):
    """
    A sales lead.

    has_followup is computed at load time from scheduled follow-ups;
    labels are loaded separately. Neither is persisted.
    """

    id: str
    name: str
    phone: str | None = None
    interest: str | None = None
    notes: str | None = None
    column_id: str
    client_id: str
    created_at: UtcDateTime | None = None
    has_followup: bool = False
    labels: list[Label] = Field(default_factory=list)

    @classmethod
    def _transient_fields(cls) -> set[str]:
        return {"has_followup", "labels"}


class Column(Entity):
    """A Kanban column; leads holds the partition for the current board."""

    id: str
    name: str
    order: int = 0
    client_id: str
    color: ColumnColor = ColumnColor.BLUE
    created_at: UtcDateTime | None = None
    leads: list[Lead] = Field(default_factory=list)

    @field_validator("color", mode="before")
    @classmethod
    def _parse_color(cls, value: Any) -> ColumnColor:
        return ColumnColor.parse(value)

    @classmethod
    def _transient_fields(cls) -> set[str]:
        return {"leads"}


class LeadLabel(Entity):
    """Assignment of a label to a lead."""

    id: str | None = None
    lead_id: str
    label_id: str


# =============================================================================
# Follow-ups
# =============================================================================


class LeadRef(BaseModel):
    """Lead fields embedded in a follow-up listing."""

    model_config = ConfigDict(extra="ignore")

    name: str
    phone: str | None = None


class Followup(Entity):
    """A WhatsApp message scheduled for a lead."""

    id: str
    lead_id: str
    scheduled_for: UtcDateTime
    message_template: str
    status: FollowupStatus = FollowupStatus.SCHEDULED
    created_at: UtcDateTime | None = None
    lead: LeadRef | None = Field(default=None, alias="leads")

    @classmethod
    def _transient_fields(cls) -> set[str]:
        return {"lead"}


# =============================================================================
# Billing
# =============================================================================


class ClientRef(BaseModel):
    """Client fields embedded in a payment listing."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str
    status: ClientStatus | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> ClientStatus | None:
        return _parse_client_status(value)


class Payment(Entity):
    """A billing record for a tenant."""

    id: str
    client_id: str
    amount: float = 0.0
    type: str | None = None
    reference_month: DateOnly | None = None
    due_date: DateOnly | None = None
    payment_date: DateOnly | None = None
    paid_early: bool = False
    status: PaymentStatus = PaymentStatus.PENDING
    created_at: UtcDateTime | None = None
    client: ClientRef | None = Field(default=None, alias="clients")

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> PaymentStatus:
        return PaymentStatus.parse(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _none_to_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @classmethod
    def _transient_fields(cls) -> set[str]:
        return {"client"}


class BillingSettings(Entity):
    """Global billing reminder configuration (single row)."""

    id: str | None = None
    default_message: str = ""
    days_before: int = Field(3, ge=1, le=30)
    send_on_due_date: bool = True
    updated_at: UtcDateTime | None = None
