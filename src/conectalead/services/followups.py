"""
Follow-up scheduling.

Follow-ups are only stored here; sending them is done by the external
workflow engine. A lead "has a follow-up" while any of its follow-ups is
scheduled.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime

from conectalead.contracts import schema
from conectalead.contracts.enums import FollowupStatus
from conectalead.contracts.models import Column, Followup, Lead
from conectalead.errors import ValidationError
from conectalead.gateway import Embed, Order, eq, in_
from conectalead.services.base import Controller

logger = logging.getLogger(__name__)


@dataclass
class BulkLeadFilter:
    """Lead picker of the bulk scheduling dialog."""

    search: str = ""
    column_id: str | None = None
    created_after: date | None = None

    def matches(self, lead: Lead) -> bool:
        if self.search and self.search.lower() not in lead.name.lower():
            return False
        if self.column_id and lead.column_id != self.column_id:
            return False
        if self.created_after:
            start = datetime.combine(self.created_after, datetime.min.time())
            if lead.created_at is None or lead.created_at < start:
                return False
        return True


def _validate(message: str, scheduled_for: datetime | None) -> str:
    message = (message or "").strip()
    if not message:
        raise ValidationError("Message is required", field="message_template")
    if scheduled_for is None:
        raise ValidationError("Schedule date is required", field="scheduled_for")
    return message


class FollowupsController(Controller):
    """Follow-ups of the bound client."""

    def _tenant_leads_embed(self, client_id: str) -> Embed:
        return Embed(schema.LEADS, columns="name,phone", inner=True, filters=(eq("client_id", client_id),))

    async def list_followups(self, status: FollowupStatus | str | None = None) -> list[Followup]:
        """Follow-ups ordered by schedule; status None or 'all' lists every status."""
        client = self.require_client()
        filters = []
        if status and status != "all":
            filters.append(eq("status", FollowupStatus(status).value))

        rows = await self.gateway.select(
            schema.FOLLOWUPS,
            filters,
            order=[Order("scheduled_for")],
            embeds=[self._tenant_leads_embed(client.id)],
        )
        return [Followup.model_validate(row) for row in rows]

    async def get_lead(self, lead_id: str) -> Lead | None:
        client = self.require_client()
        row = await self.gateway.select_one(schema.LEADS, [eq("id", lead_id), eq("client_id", client.id)])
        return Lead.model_validate(row) if row else None

    async def create(self, lead_id: str | None, message: str, scheduled_for: datetime | None) -> Followup:
        """Schedule one message for a lead."""
        if not lead_id:
            raise ValidationError("Select a lead", field="lead_id")
        message = _validate(message, scheduled_for)
        if await self.get_lead(lead_id) is None:
            raise ValidationError(f"Lead {lead_id} not found", field="lead_id")

        rows = await self.gateway.insert(
            schema.FOLLOWUPS,
            {
                "lead_id": lead_id,
                "message_template": message,
                "scheduled_for": scheduled_for,
                "status": FollowupStatus.SCHEDULED.value,
            },
        )
        logger.info(f"Follow-up scheduled for lead {lead_id}", extra={"lead_id": lead_id})
        return Followup.model_validate(rows[0])

    async def bulk_candidates(self, lead_filter: BulkLeadFilter | None = None) -> tuple[list[Column], list[Lead]]:
        """Columns and leads offered by the bulk dialog after filtering."""
        client = self.require_client()
        lead_filter = lead_filter or BulkLeadFilter()

        columns = await self.gateway.select(schema.COLUMNS, [eq("client_id", client.id)], order=[Order("order")])
        leads = await self.gateway.select(schema.LEADS, [eq("client_id", client.id)], order=[Order("created_at")])
        parsed = [Lead.model_validate(row) for row in leads]
        return [Column.model_validate(c) for c in columns], [lead for lead in parsed if lead_filter.matches(lead)]

    async def bulk_create(self, lead_ids: list[str], message: str, scheduled_for: datetime | None) -> list[Followup]:
        """Schedule the same message for several leads in one insert."""
        if not lead_ids:
            raise ValidationError("Select at least one lead", field="lead_ids")
        message = _validate(message, scheduled_for)
        client = self.require_client()

        ids = list(dict.fromkeys(lead_ids))
        owned = await self.gateway.select(schema.LEADS, [in_("id", ids), eq("client_id", client.id)], columns="id")
        missing = set(ids) - {row["id"] for row in owned}
        if missing:
            raise ValidationError(f"Leads not found: {', '.join(sorted(missing))}", field="lead_ids")

        rows = await self.gateway.insert(
            schema.FOLLOWUPS,
            [
                {
                    "lead_id": lead_id,
                    "message_template": message,
                    "scheduled_for": scheduled_for,
                    "status": FollowupStatus.SCHEDULED.value,
                }
                for lead_id in ids
            ],
        )
        logger.info(f"Scheduled {len(rows)} follow-ups")
        return [Followup.model_validate(row) for row in rows]

    async def _owns_followup(self, followup_id: str) -> bool:
        client = self.require_client()
        row = await self.gateway.select_one(
            schema.FOLLOWUPS,
            [eq("id", followup_id)],
            embeds=[self._tenant_leads_embed(client.id)],
            columns="id",
        )
        return row is not None

    async def update(self, followup_id: str, message: str, scheduled_for: datetime | None) -> Followup | None:
        message = _validate(message, scheduled_for)
        if not await self._owns_followup(followup_id):
            return None
        rows = await self.gateway.update(
            schema.FOLLOWUPS,
            {"message_template": message, "scheduled_for": scheduled_for},
            [eq("id", followup_id)],
        )
        return Followup.model_validate(rows[0]) if rows else None

    async def cancel(self, followup_id: str) -> Followup | None:
        if not await self._owns_followup(followup_id):
            return None
        rows = await self.gateway.update(
            schema.FOLLOWUPS,
            {"status": FollowupStatus.CANCELLED.value},
            [eq("id", followup_id)],
        )
        return Followup.model_validate(rows[0]) if rows else None
