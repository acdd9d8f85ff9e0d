"""
ConectaLead Database Models

Tables for the self-hosted backend. Column names match the hosted
backend's schema so both gateways return the same row shapes.

Tables:
- users: accounts for the local auth service
- clients: tenants (client companies)
- columns: Kanban columns per tenant
- leads: sales leads, one column each
- labels / lead_labels: tenant labels and their assignment to leads
- followups: scheduled WhatsApp messages per lead
- payments: billing records per tenant
- billing_settings: single-row reminder configuration
"""

from uuid import uuid4

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

from conectalead.contracts.models import utcnow

SqlBase = declarative_base()


def new_id() -> str:
    return str(uuid4())


class RecordMixin:
    """Common fields for all tables."""

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class UserRecord(SqlBase, RecordMixin):
    """Account for the local auth service."""

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="client")  # admin, client


class ClientRecord(SqlBase, RecordMixin):
    """
    A tenant. The id equals the id of the account that owns it.
    """

    __tablename__ = "clients"

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    whatsapp = Column(String(50), nullable=True)
    cnpj = Column(String(32), nullable=True)
    plan_type = Column(String(20), nullable=True, default="mensal")  # mensal, trimestral, anual
    status = Column(String(20), nullable=True)  # ativo, inativo, vencido, pendente
    expiration_date = Column(Date, nullable=True)

    # Billing
    billing_base_date = Column(Date, nullable=True)
    billing_day = Column(Integer, nullable=True)
    billing_message = Column(Text, nullable=True)
    billing_automation_enabled = Column(Boolean, nullable=False, default=False)
    initial_fee = Column(Float, nullable=False, default=0.0)
    monthly_fee = Column(Float, nullable=False, default=0.0)
    next_due_date = Column(Date, nullable=True)
    last_payment_date = Column(Date, nullable=True)
    payment_confirmed = Column(Boolean, nullable=False, default=False)

    # Inbound lead webhook
    webhook_url = Column(Text, nullable=True)
    webhook_status = Column(String(20), nullable=True)  # ativo, aguardando, erro

    __table_args__ = (Index("ix_clients_name", "name"),)


class ColumnRecord(SqlBase, RecordMixin):
    """Kanban column."""

    __tablename__ = "columns"

    name = Column(String(255), nullable=False)
    order = Column(Integer, nullable=False, default=0)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    color = Column(String(20), nullable=False, default="blue")

    __table_args__ = (Index("ix_columns_client_order", "client_id", "order"),)


class LeadRecord(SqlBase, RecordMixin):
    """Sales lead."""

    __tablename__ = "leads"

    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    interest = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    column_id = Column(String(36), ForeignKey("columns.id", ondelete="CASCADE"), nullable=False)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        Index("ix_leads_client", "client_id"),
        Index("ix_leads_column", "column_id"),
    )


class LabelRecord(SqlBase, RecordMixin):
    """Tenant label. Names are not unique."""

    __tablename__ = "labels"

    name = Column(String(100), nullable=False)
    color = Column(String(20), nullable=False, default="blue")
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)


class LeadLabelRecord(SqlBase, RecordMixin):
    """Label assignment."""

    __tablename__ = "lead_labels"

    lead_id = Column(String(36), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    label_id = Column(String(36), ForeignKey("labels.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (Index("ix_lead_labels_lead", "lead_id"),)


class FollowupRecord(SqlBase, RecordMixin):
    """Scheduled follow-up message."""

    __tablename__ = "followups"

    lead_id = Column(String(36), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    scheduled_for = Column(DateTime, nullable=False)
    message_template = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")  # scheduled, sent, cancelled

    __table_args__ = (Index("ix_followups_lead_status", "lead_id", "status"),)


class PaymentRecord(SqlBase, RecordMixin):
    """Billing record."""

    __tablename__ = "payments"

    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Float, nullable=False, default=0.0)
    type = Column(String(50), nullable=True)
    reference_month = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    payment_date = Column(Date, nullable=True)
    paid_early = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="pending")  # paid, pending, cancelled

    __table_args__ = (
        Index("ix_payments_client", "client_id"),
        Index("ix_payments_due", "due_date"),
    )


class BillingSettingsRecord(SqlBase):
    """Billing reminder configuration."""

    __tablename__ = "billing_settings"

    id = Column(String(36), primary_key=True, default=new_id)
    default_message = Column(Text, nullable=False, default="")
    days_before = Column(Integer, nullable=False, default=3)
    send_on_due_date = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
