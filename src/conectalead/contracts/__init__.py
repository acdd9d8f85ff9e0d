"""
Data contracts: enums, entity models and table relations.
"""

from conectalead.contracts.enums import (
    ClientStatus,
    ColumnColor,
    FollowupStatus,
    PaymentStatus,
    PlanType,
    Role,
    SessionEvent,
    WebhookStatus,
    WhatsAppSessionStatus,
)
from conectalead.contracts.models import (
    AuthSession,
    BillingSettings,
    Client,
    Column,
    Followup,
    Identity,
    Label,
    Lead,
    LeadLabel,
    Payment,
    utcnow,
)

__all__ = [
    "AuthSession",
    "BillingSettings",
    "Client",
    "ClientStatus",
    "Column",
    "ColumnColor",
    "Followup",
    "FollowupStatus",
    "Identity",
    "Label",
    "Lead",
    "LeadLabel",
    "Payment",
    "PaymentStatus",
    "PlanType",
    "Role",
    "SessionEvent",
    "WebhookStatus",
    "WhatsAppSessionStatus",
    "utcnow",
]
