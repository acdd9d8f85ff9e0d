"""
Tests for the dashboards and the client lead report.
"""

from datetime import date, datetime, timedelta

import pytest

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, PlanType
from conectalead.contracts.models import utcnow
from conectalead.errors import AccessDenied
from conectalead.services import DashboardController, ReportsController
from conectalead.services.dashboard import ClientDashboardStats
from conectalead.services.reports import ReportFilters, columns_in


async def add_column(gateway, client_id, name, order):
    rows = await gateway.insert(schema.COLUMNS, {"name": name, "order": order, "client_id": client_id})
    return rows[0]["id"]


async def add_lead(gateway, client_id, column_id, name, created_at=None, **fields):
    row = {"name": name, "column_id": column_id, "client_id": client_id, **fields}
    if created_at is not None:
        row["created_at"] = created_at
    rows = await gateway.insert(schema.LEADS, row)
    return rows[0]["id"]


class TestClientDashboard:
    """Tests for the client pipeline summary."""

    @pytest.mark.asyncio
    async def test_counts(self, tenant_store, tenant, make_account, gateway):
        qualified = await add_column(gateway, tenant.id, "Leads Qualificados", 5)
        canceled = await add_column(gateway, tenant.id, "Cancelado", 6)
        new = await add_column(gateway, tenant.id, "Entrada", 7)

        first = await add_lead(gateway, tenant.id, qualified, "Ana")
        await add_lead(gateway, tenant.id, qualified, "Bruno")
        await add_lead(gateway, tenant.id, qualified, "Carla", created_at=utcnow() - timedelta(days=10))
        await add_lead(gateway, tenant.id, canceled, "Davi")
        second = await add_lead(gateway, tenant.id, new, "Eva")

        other = await make_account("outra@empresa.com", "senha123", name="Outra", columns=False)
        other_column = await add_column(gateway, other.id, "Qualificado", 1)
        foreign = await add_lead(gateway, other.id, other_column, "Fora")

        soon = utcnow() + timedelta(days=1)
        await gateway.insert(
            schema.FOLLOWUPS,
            [
                {"lead_id": second, "scheduled_for": soon + timedelta(hours=2), "message_template": "b"},
                {"lead_id": first, "scheduled_for": soon, "message_template": "a"},
                {"lead_id": first, "scheduled_for": soon, "message_template": "x", "status": "cancelled"},
                {"lead_id": foreign, "scheduled_for": soon, "message_template": "y"},
            ],
        )

        stats = await DashboardController(tenant_store).client_stats()

        assert stats.total_leads == 5
        assert stats.qualified_leads == 3
        assert stats.weekly_qualified == 2
        assert stats.canceled_leads == 1
        assert stats.followup_leads == 2
        assert [f.message_template for f in stats.upcoming_followups] == ["a", "b"]
        assert stats.upcoming_followups[0].lead.name == "Ana"

    @pytest.mark.asyncio
    async def test_followup_count_is_not_capped(self, tenant_store, tenant, gateway):
        """Every scheduled follow-up counts, while only the next five are listed."""
        column = await add_column(gateway, tenant.id, "Entrada", 5)
        start = utcnow() + timedelta(days=1)
        for i in range(7):
            lead = await add_lead(gateway, tenant.id, column, f"Lead {i}")
            await gateway.insert(
                schema.FOLLOWUPS,
                {"lead_id": lead, "scheduled_for": start + timedelta(hours=i), "message_template": f"m{i}"},
            )

        stats = await DashboardController(tenant_store).client_stats()

        assert stats.followup_leads == 7
        assert [f.message_template for f in stats.upcoming_followups] == ["m0", "m1", "m2", "m3", "m4"]

    @pytest.mark.asyncio
    async def test_empty_board(self, tenant_store):
        stats = await DashboardController(tenant_store).client_stats()

        assert stats.total_leads == 0
        assert stats.upcoming_followups == []

    def test_motivational_message(self):
        assert "qualificou 2 leads" in ClientDashboardStats(weekly_qualified=2).motivational_message
        assert ClientDashboardStats().motivational_message.startswith("Comece")

    @pytest.mark.asyncio
    async def test_admin_has_no_client_dashboard(self, admin_store):
        with pytest.raises(AccessDenied):
            await DashboardController(admin_store).client_stats()


class TestAdminDashboard:
    """Tests for the admin account overview."""

    @pytest.mark.asyncio
    async def test_counts(self, admin_store, tenant, make_account):
        await make_account("parada@empresa.com", "senha123", status=ClientStatus.INATIVO, columns=False)
        await make_account(
            "vencida@empresa.com",
            "senha123",
            status=ClientStatus.VENCIDO,
            columns=False,
            plan_type=PlanType.ANUAL.value,
            expiration_date=date(2024, 1, 31),
        )

        stats = await DashboardController(admin_store).admin_stats(today=date(2024, 3, 1))

        assert stats.total_clients == 3
        assert stats.active_clients == 1
        assert stats.inactive_clients == 1
        assert stats.expired_clients == 1
        assert stats.plan_distribution == {"mensal": 2, "anual": 1}

    @pytest.mark.asyncio
    async def test_tenant_denied(self, tenant_store):
        with pytest.raises(AccessDenied):
            await DashboardController(tenant_store).admin_stats()


class TestReports:
    """Tests for the lead report."""

    @pytest.fixture
    def leads(self, tenant, gateway):
        async def _seed():
            first = await add_column(gateway, tenant.id, "Prospecção", 5)
            closed = await add_column(gateway, tenant.id, "Fechado", 6)
            await add_lead(gateway, tenant.id, first, "Ana", datetime(2024, 3, 1, 10), phone="11911112222")
            await add_lead(gateway, tenant.id, closed, "Bob, Jr.", datetime(2024, 3, 5, 23, 59), interest="Plano anual")
            await add_lead(gateway, tenant.id, first, "Carla", datetime(2024, 3, 10, 8))

        return _seed

    @pytest.mark.asyncio
    async def test_newest_first(self, tenant_store, leads):
        await leads()

        rows = await ReportsController(tenant_store).load()

        assert [r.lead.name for r in rows] == ["Carla", "Bob, Jr.", "Ana"]
        assert columns_in(rows) == ["Prospecção", "Fechado"]

    @pytest.mark.asyncio
    async def test_filters(self, tenant_store, leads):
        await leads()
        controller = ReportsController(tenant_store)

        by_column = await controller.filtered(ReportFilters(column="prosp"))
        by_range = await controller.filtered(ReportFilters(start_date=date(2024, 3, 2), end_date=date(2024, 3, 5)))
        by_name = await controller.filtered(ReportFilters(search="CARLA"))

        assert [r.lead.name for r in by_column] == ["Carla", "Ana"]
        assert [r.lead.name for r in by_range] == ["Bob, Jr."]
        assert [r.lead.name for r in by_name] == ["Carla"]

    @pytest.mark.asyncio
    async def test_export_csv(self, tenant_store, leads):
        await leads()

        content = await ReportsController(tenant_store).export_csv(ReportFilters(column="fechado"))

        assert content == (
            "Nome,Telefone,Coluna,Data de Criação,Interesse\n"
            '"Bob, Jr.",,Fechado,05/03/2024,Plano anual\n'
        )
