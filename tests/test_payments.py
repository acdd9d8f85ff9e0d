"""
Tests for payment control: monthly figures, confirmation and the ledger.
"""

from datetime import date

import pytest

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, PaymentStatus
from conectalead.contracts.models import Client, Payment
from conectalead.errors import AccessDenied
from conectalead.gateway import eq
from conectalead.guard import AccessGuard, Route
from conectalead.services import PaymentsController
from conectalead.services.payments import (
    ClientBillingFilters,
    LedgerFilters,
    client_payment_status,
    display_status,
    format_reference_month,
    monthly_stats,
)

TODAY = date(2024, 3, 15)


def client(**fields) -> Client:
    values = {"id": "c", "name": "Cliente", "status": "ativo", "monthly_fee": 100.0}
    values.update(fields)
    return Client(**values)


class TestMonthlyStats:
    """Tests for the monthly figures of the payments screen."""

    def test_received_pending_next_month(self):
        clients = [
            client(id="a", monthly_fee=100, last_payment_date=date(2024, 3, 5), payment_confirmed=True),
            client(id="b", monthly_fee=200, next_due_date=date(2024, 3, 20)),
            client(id="c", monthly_fee=300, next_due_date=date(2024, 4, 10)),
            client(id="d", monthly_fee=400, next_due_date=date(2024, 3, 25), status="inativo"),
            client(id="e", monthly_fee=500, next_due_date=date(2024, 3, 25), payment_confirmed=True),
        ]

        stats = monthly_stats(clients, TODAY)

        assert stats.received == 100
        assert stats.pending == 200
        assert stats.next_month == 300

    def test_december_rolls_into_january(self):
        clients = [client(next_due_date=date(2025, 1, 5))]

        assert monthly_stats(clients, date(2024, 12, 20)).next_month == 100

    def test_client_payment_status(self):
        assert client_payment_status(client(payment_confirmed=True), TODAY) == PaymentStatus.PAID
        assert client_payment_status(client(next_due_date=date(2024, 3, 1)), TODAY) == PaymentStatus.LATE
        assert client_payment_status(client(next_due_date=date(2024, 3, 30)), TODAY) == PaymentStatus.PENDING

    def test_display_status(self):
        overdue = Payment(id="p", client_id="c", status="pending", due_date=date(2024, 3, 1))
        paid = Payment(id="p", client_id="c", status="pago", due_date=date(2024, 3, 1))

        assert display_status(overdue, TODAY) == PaymentStatus.LATE
        assert display_status(paid, TODAY) == PaymentStatus.PAID

    def test_format_reference_month(self):
        assert format_reference_month(date(2024, 3, 1)) == "Março/2024"


class TestPaymentsController:
    """Tests for confirming payments and browsing the ledger."""

    @pytest.mark.asyncio
    async def test_confirm_payment(self, admin_store, tenant, gateway):
        await gateway.update(
            schema.CLIENTS,
            {"status": "vencido", "monthly_fee": 150.0, "next_due_date": date(2024, 3, 20)},
            [eq("id", tenant.id)],
        )

        payment = await PaymentsController(admin_store).confirm_payment(tenant.id, date(2024, 3, 1), date(2024, 3, 18))

        row = await gateway.select_one(schema.CLIENTS, [eq("id", tenant.id)])
        updated = Client.model_validate(row)
        assert payment.status == PaymentStatus.PAID
        assert payment.amount == 150.0
        assert payment.paid_early is True
        assert payment.reference_month == date(2024, 3, 1)
        assert updated.status == ClientStatus.ATIVO
        assert updated.payment_confirmed is True
        assert updated.last_payment_date == date(2024, 3, 18)

    @pytest.mark.asyncio
    async def test_confirm_reactivates_access(self, admin_store, make_account, sign_in):
        """A confirmed payment lifts the restriction on the next sign-in."""
        restricted = await make_account("vencida@empresa.com", "senha123", status=ClientStatus.VENCIDO)
        await PaymentsController(admin_store).confirm_payment(restricted.id, date(2024, 3, 1), date(2024, 3, 5))

        store = await sign_in("vencida@empresa.com", "senha123")

        assert AccessGuard().check(Route.DASHBOARD, store).allowed

    @pytest.mark.asyncio
    async def test_unmark_payment(self, admin_store, tenant, gateway):
        controller = PaymentsController(admin_store)
        await controller.confirm_payment(tenant.id, date(2024, 3, 1), date(2024, 3, 5))

        await controller.unmark_payment(tenant.id)

        updated = Client.model_validate(await gateway.select_one(schema.CLIENTS, [eq("id", tenant.id)]))
        assert updated.status == ClientStatus.PENDENTE
        assert updated.payment_confirmed is False
        assert updated.last_payment_date is None

    @pytest.mark.asyncio
    async def test_billing_clients(self, admin_store, tenant, gateway):
        await gateway.update(
            schema.CLIENTS,
            {"monthly_fee": 120.0, "next_due_date": date(2024, 3, 20)},
            [eq("id", tenant.id)],
        )

        clients, stats = await PaymentsController(admin_store).billing_clients(today=TODAY)
        late, _ = await PaymentsController(admin_store).billing_clients(
            ClientBillingFilters(payment=PaymentStatus.LATE), today=TODAY
        )

        assert [c.id for c in clients] == [tenant.id]
        assert stats.pending == 120.0
        assert late == []

    @pytest.mark.asyncio
    async def test_ledger_groups_by_month(self, admin_store, tenant, gateway):
        await gateway.insert(
            schema.PAYMENTS,
            [
                {"client_id": tenant.id, "amount": 100, "reference_month": date(2024, 2, 1), "status": "paid"},
                {"client_id": tenant.id, "amount": 100, "reference_month": date(2024, 3, 1), "status": "paid"},
                {"client_id": tenant.id, "amount": 50, "reference_month": date(2024, 3, 1), "status": "pending"},
            ],
        )
        controller = PaymentsController(admin_store)

        groups = await controller.ledger(LedgerFilters())
        march = await controller.ledger(LedgerFilters(month="2024-03", status=PaymentStatus.PAID))

        assert [g.month for g in groups] == ["2024-03", "2024-02"]
        assert groups[0].total == 150
        assert groups[0].payments[0].client.name == "Empresa Teste"
        assert len(march) == 1
        assert march[0].total == 100

    @pytest.mark.asyncio
    async def test_tenant_denied(self, tenant_store):
        with pytest.raises(AccessDenied):
            await PaymentsController(tenant_store).ledger()
