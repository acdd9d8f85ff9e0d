"""
Dashboards: client pipeline summary and admin account overview.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, FollowupStatus
from conectalead.contracts.models import Client, Followup, Lead, utcnow
from conectalead.gateway import Embed, Order, eq
from conectalead.services.base import Controller

logger = logging.getLogger(__name__)

QUALIFIED_MARKER = "qualificado"
CANCELED_MARKER = "cancelado"
UPCOMING_LIMIT = 5


@dataclass
class ClientDashboardStats:
    total_leads: int = 0
    qualified_leads: int = 0
    followup_leads: int = 0
    canceled_leads: int = 0
    weekly_qualified: int = 0
    upcoming_followups: list[Followup] = field(default_factory=list)

    @property
    def motivational_message(self) -> str:
        if self.weekly_qualified > 0:
            return f"Parabéns! Você qualificou {self.weekly_qualified} leads nesta semana. Continue assim!"
        return "Comece a qualificar seus leads e acompanhe seu progresso aqui!"


@dataclass
class AdminDashboardStats:
    total_clients: int = 0
    active_clients: int = 0
    inactive_clients: int = 0
    expired_clients: int = 0
    plan_distribution: dict[str, int] = field(default_factory=dict)


def _column_name(row: dict) -> str:
    column = row.get(schema.COLUMNS) or {}
    return (column.get("name") or "").lower()


class DashboardController(Controller):
    """Summary figures for the dashboard screens."""

    async def client_stats(self) -> ClientDashboardStats:
        """Lead counts by stage and the next scheduled follow-ups."""
        client = self.require_client()

        leads = await self.gateway.select(
            schema.LEADS,
            [eq("client_id", client.id)],
            embeds=[Embed(schema.COLUMNS)],
        )
        scheduled = [eq("status", FollowupStatus.SCHEDULED.value)]
        tenant_leads = Embed(
            schema.LEADS,
            columns="name,phone",
            inner=True,
            filters=(eq("client_id", client.id),),
        )
        scheduled_ids = await self.gateway.select(
            schema.FOLLOWUPS, scheduled, embeds=[tenant_leads], columns="id"
        )
        followups = await self.gateway.select(
            schema.FOLLOWUPS,
            scheduled,
            order=[Order("scheduled_for")],
            embeds=[tenant_leads],
            limit=UPCOMING_LIMIT,
        )

        one_week_ago = utcnow() - timedelta(days=7)
        qualified = [row for row in leads if QUALIFIED_MARKER in _column_name(row)]
        weekly = [
            row
            for row in qualified
            if (created := Lead.model_validate(row).created_at) is not None and created >= one_week_ago
        ]

        return ClientDashboardStats(
            total_leads=len(leads),
            qualified_leads=len(qualified),
            followup_leads=len(scheduled_ids),
            canceled_leads=sum(1 for row in leads if CANCELED_MARKER in _column_name(row)),
            weekly_qualified=len(weekly),
            upcoming_followups=[Followup.model_validate(row) for row in followups],
        )

    async def admin_stats(self, today: date | None = None) -> AdminDashboardStats:
        """Client counts by status and plan."""
        self.require_admin()
        today = today or utcnow().date()

        clients = [Client.model_validate(r) for r in await self.gateway.select(schema.CLIENTS)]
        return AdminDashboardStats(
            total_clients=len(clients),
            active_clients=sum(1 for c in clients if c.status == ClientStatus.ATIVO),
            inactive_clients=sum(1 for c in clients if c.status == ClientStatus.INATIVO),
            expired_clients=sum(1 for c in clients if c.expiration_date and c.expiration_date < today),
            plan_distribution=dict(Counter(c.plan_type.value for c in clients if c.plan_type)),
        )

