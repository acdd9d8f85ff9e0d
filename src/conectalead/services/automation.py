"""
Admin: billing automation settings.

Only configuration lives here. Reminders are sent by the external
workflow engine, which reads these fields.
"""

import logging
from dataclasses import dataclass
from datetime import date

from conectalead.contracts import schema
from conectalead.contracts.enums import PlanType
from conectalead.contracts.models import BillingSettings, Client, utcnow
from conectalead.errors import ValidationError
from conectalead.gateway import Order, eq
from conectalead.services.base import Controller

logger = logging.getLogger(__name__)

NEAR_DUE_DAYS = 3


def is_near_due_date(billing_day: int | None, today: date | None = None) -> bool:
    """Billing day is today or within the next three days of this month."""
    if billing_day is None:
        return False
    today = today or utcnow().date()
    return 0 <= billing_day - today.day <= NEAR_DUE_DAYS


@dataclass
class AutomationFilters:
    search: str = ""
    plan_type: PlanType | None = None
    automation: str = "all"  # all | enabled | disabled

    def matches(self, client: Client) -> bool:
        if self.search:
            term = self.search.lower()
            if term not in client.name.lower() and term not in (client.whatsapp or "").lower():
                return False
        if self.plan_type and client.plan_type != self.plan_type:
            return False
        if self.automation == "enabled" and not client.billing_automation_enabled:
            return False
        if self.automation == "disabled" and client.billing_automation_enabled:
            return False
        return True


class AutomationController(Controller):
    """Per-client reminder settings and the global billing settings."""

    async def list_clients(self, filters: AutomationFilters | None = None) -> list[Client]:
        self.require_admin()
        filters = filters or AutomationFilters()
        rows = await self.gateway.select(schema.CLIENTS, order=[Order("billing_day")])
        return [c for c in (Client.model_validate(r) for r in rows) if filters.matches(c)]

    async def _update_client(self, client_id: str, patch: dict) -> Client | None:
        self.require_admin()
        rows = await self.gateway.update(schema.CLIENTS, patch, [eq("id", client_id)])
        return Client.model_validate(rows[0]) if rows else None

    async def set_automation(self, client_id: str, enabled: bool) -> Client | None:
        return await self._update_client(client_id, {"billing_automation_enabled": enabled})

    async def toggle_automation(self, client_id: str) -> Client | None:
        self.require_admin()
        row = await self.gateway.select_one(schema.CLIENTS, [eq("id", client_id)])
        if row is None:
            raise ValidationError(f"Client {client_id} not found", field="client_id")
        return await self.set_automation(client_id, not Client.model_validate(row).billing_automation_enabled)

    async def save_client_settings(
        self,
        client_id: str,
        billing_day: int | None = None,
        billing_message: str | None = None,
        whatsapp: str | None = None,
    ) -> Client | None:
        """Save billing day (1-31), reminder message and WhatsApp number."""
        patch: dict = {}
        if billing_day is not None:
            if not 1 <= billing_day <= 31:
                raise ValidationError("Billing day must be between 1 and 31", field="billing_day")
            patch["billing_day"] = billing_day
        if billing_message is not None:
            patch["billing_message"] = billing_message
        if whatsapp is not None:
            patch["whatsapp"] = whatsapp
        if not patch:
            return None
        return await self._update_client(client_id, patch)

    # =========================================================================
    # Global settings
    # =========================================================================

    async def get_settings(self) -> BillingSettings:
        """The settings row, or defaults when none exists yet."""
        self.require_admin()
        row = await self.gateway.select_one(schema.BILLING_SETTINGS)
        return BillingSettings.model_validate(row) if row else BillingSettings()

    async def save_settings(
        self,
        default_message: str,
        days_before: int,
        send_on_due_date: bool,
    ) -> BillingSettings:
        self.require_admin()
        if not 1 <= days_before <= 30:
            raise ValidationError("Days before must be between 1 and 30", field="days_before")

        patch = {
            "default_message": default_message,
            "days_before": days_before,
            "send_on_due_date": send_on_due_date,
            "updated_at": utcnow(),
        }
        current = await self.gateway.select_one(schema.BILLING_SETTINGS)
        if current is None:
            rows = await self.gateway.insert(schema.BILLING_SETTINGS, patch)
        else:
            rows = await self.gateway.update(schema.BILLING_SETTINGS, patch, [eq("id", current["id"])])
        logger.info("Billing settings saved")
        return BillingSettings.model_validate(rows[0])
