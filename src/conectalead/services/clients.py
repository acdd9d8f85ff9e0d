"""
Admin: client accounts.

Provisioning creates the login, the client row (same id as the login),
the four default Kanban columns, and sends a password-reset email so the
client sets their own password.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import date

from pydantic import BaseModel

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, PaymentStatus, PlanType, Role
from conectalead.contracts.models import Client
from conectalead.errors import ValidationError
from conectalead.gateway import Order, eq, in_
from conectalead.kanban.board import seed_default_columns
from conectalead.services.base import Controller

logger = logging.getLogger(__name__)

TEMP_PASSWORD_LENGTH = 8


class NewClient(BaseModel):
    """Provisioning form."""

    name: str
    email: str
    whatsapp: str
    expiration_date: date | None = None
    plan_type: PlanType = PlanType.MENSAL
    status: ClientStatus = ClientStatus.ATIVO
    cnpj: str | None = None
    initial_fee: float = 0.0
    monthly_fee: float = 0.0
    billing_message: str | None = None
    billing_automation_enabled: bool = False


class ClientUpdate(BaseModel):
    """Admin edit form; only fields that are set are written."""

    name: str | None = None
    email: str | None = None
    plan_type: PlanType | None = None
    status: ClientStatus | None = None
    billing_base_date: date | None = None
    whatsapp: str | None = None
    billing_message: str | None = None
    billing_automation_enabled: bool | None = None
    monthly_fee: float | None = None
    expiration_date: date | None = None
    cnpj: str | None = None


@dataclass
class ClientFilters:
    search: str = ""
    plan_type: PlanType | None = None
    status: ClientStatus | None = None

    def matches(self, client: Client) -> bool:
        if self.search:
            term = self.search.lower()
            if term not in client.name.lower() and term not in (client.email or "").lower():
                return False
        if self.plan_type and client.plan_type != self.plan_type:
            return False
        if self.status and client.status != self.status:
            return False
        return True


def temporary_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


class ClientsController(Controller):
    """Client account administration."""

    async def list_clients(self, filters: ClientFilters | None = None) -> list[Client]:
        self.require_admin()
        filters = filters or ClientFilters()
        rows = await self.gateway.select(schema.CLIENTS, order=[Order("name")])
        return [c for c in (Client.model_validate(r) for r in rows) if filters.matches(c)]

    async def get_client(self, client_id: str) -> Client | None:
        self.require_admin()
        row = await self.gateway.select_one(schema.CLIENTS, [eq("id", client_id)])
        return Client.model_validate(row) if row else None

    async def provision(self, form: NewClient) -> Client:
        """Create a client account with login and default board."""
        self.require_admin()
        for field in ("name", "email", "whatsapp"):
            if not (getattr(form, field) or "").strip():
                raise ValidationError(f"{field} is required", field=field)
        if form.expiration_date is None:
            raise ValidationError("expiration_date is required", field="expiration_date")

        email = form.email.strip()
        identity = await self.auth.sign_up(email, temporary_password(), Role.CLIENT)

        row = form.model_dump(mode="json")
        row.update({"id": identity.id, "name": form.name.strip(), "email": email})
        rows = await self.gateway.insert(schema.CLIENTS, row)
        client = Client.model_validate(rows[0])

        await seed_default_columns(self.gateway, client.id)
        await self.auth.reset_password_for_email(email)

        logger.info(f"Provisioned client {client.name}", extra={"client_id": client.id})
        return client

    async def edit(self, client_id: str, update: ClientUpdate, recalculate_payments: bool = False) -> Client | None:
        """
        Save admin edits.

        With recalculate_payments, pending payments take the new monthly
        fee and the billing base date as due date.
        """
        self.require_admin()
        patch = update.model_dump(mode="json", exclude_unset=True)
        if "name" in patch and not (patch["name"] or "").strip():
            raise ValidationError("name is required", field="name")

        rows = await self.gateway.update(schema.CLIENTS, patch, [eq("id", client_id)]) if patch else []
        if recalculate_payments:
            payment_patch = {}
            if update.monthly_fee is not None:
                payment_patch["amount"] = update.monthly_fee
            if update.billing_base_date is not None:
                payment_patch["due_date"] = update.billing_base_date
            if payment_patch:
                await self.gateway.update(
                    schema.PAYMENTS,
                    payment_patch,
                    [eq("client_id", client_id), eq("status", PaymentStatus.PENDING.value)],
                )

        if rows:
            return Client.model_validate(rows[0])
        return await self.get_client(client_id)

    async def toggle_status(self, client_id: str) -> Client:
        """Flip between ativo and inativo."""
        client = await self.get_client(client_id)
        if client is None:
            raise ValidationError(f"Client {client_id} not found", field="client_id")
        new_status = ClientStatus.INATIVO if client.status == ClientStatus.ATIVO else ClientStatus.ATIVO
        rows = await self.gateway.update(schema.CLIENTS, {"status": new_status.value}, [eq("id", client_id)])
        return Client.model_validate(rows[0])

    async def delete(self, client_id: str) -> None:
        """
        Irreversibly delete a client and everything it owns.

        Children go first: follow-ups and label assignments of its leads,
        leads, labels, columns, payments, then the client row.
        """
        self.require_admin()
        lead_rows = await self.gateway.select(schema.LEADS, [eq("client_id", client_id)], columns="id")
        lead_ids = [r["id"] for r in lead_rows]
        if lead_ids:
            await self.gateway.delete(schema.FOLLOWUPS, [in_("lead_id", lead_ids)])
            await self.gateway.delete(schema.LEAD_LABELS, [in_("lead_id", lead_ids)])
            await self.gateway.delete(schema.LEADS, [eq("client_id", client_id)])
        await self.gateway.delete(schema.LABELS, [eq("client_id", client_id)])
        await self.gateway.delete(schema.COLUMNS, [eq("client_id", client_id)])
        await self.gateway.delete(schema.PAYMENTS, [eq("client_id", client_id)])
        await self.gateway.delete(schema.CLIENTS, [eq("id", client_id)])
        logger.info(f"Deleted client {client_id}", extra={"client_id": client_id, "leads": len(lead_ids)})
