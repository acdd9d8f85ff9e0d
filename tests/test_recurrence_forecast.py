"""
Tests for the recurrence report and the billing forecast.
"""

from datetime import date, datetime, timedelta

import pytest

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus
from conectalead.contracts.models import Client, Payment, utcnow
from conectalead.errors import AccessDenied, ValidationError
from conectalead.gateway import eq
from conectalead.services import ForecastController, RecurrenceController
from conectalead.services.forecast import Forecast, ForecastDay, forecast_filename, month_bounds
from conectalead.services.recurrence import RecurrenceFilters, build_row


def payment(status: str, paid_on: date | None) -> Payment:
    return Payment(id="p", client_id="c", status=status, payment_date=paid_on)


class TestBuildRow:
    """Tests for one row of the recurrence report."""

    def test_counts_paid_payments_only(self):
        client = Client(id="c", name="Loja", created_at=datetime(2024, 1, 1))
        payments = [
            payment("paid", date(2024, 3, 5)),
            payment("paid", date(2024, 1, 10)),
            payment("pending", None),
            payment("cancelled", date(2024, 2, 1)),
        ]

        row = build_row(client, payments, today=date(2024, 4, 1))

        assert row.total_payments == 2
        assert row.first_payment == date(2024, 1, 10)
        assert row.last_payment == date(2024, 3, 5)
        assert row.months_active == 3

    def test_months_use_thirty_day_periods(self):
        client = Client(id="c", name="Loja", created_at=datetime(2024, 1, 1))

        assert build_row(client, [], today=date(2024, 1, 30)).months_active == 0
        assert build_row(client, [], today=date(2024, 1, 31)).months_active == 1

    def test_no_payments(self):
        row = build_row(Client(id="c", name="Loja"), [], today=date(2024, 4, 1))

        assert row.total_payments == 0
        assert row.first_payment is None
        assert row.months_active == 0

    def test_csv_row(self):
        client = Client(id="c", name="Loja", status="ativo", plan_type="anual")
        row = build_row(client, [payment("paid", date(2024, 3, 5))], today=date(2024, 4, 1))

        assert row.as_csv_row() == ["Loja", 1, date(2024, 3, 5), date(2024, 3, 5), 0, "ativo", "anual"]


class TestRecurrenceReport:
    """Tests for the recurrence report over the backend."""

    @pytest.mark.asyncio
    async def test_sorting(self, admin_store, tenant, make_account, gateway):
        older = await make_account("antiga@empresa.com", "senha123", name="Antiga", columns=False)
        await gateway.update(
            schema.CLIENTS, {"created_at": utcnow() - timedelta(days=95)}, [eq("id", older.id)]
        )
        await gateway.insert(
            schema.PAYMENTS,
            [
                {"client_id": tenant.id, "amount": 100, "status": "paid", "payment_date": date(2024, 1, 5)},
                {"client_id": tenant.id, "amount": 100, "status": "paid", "payment_date": date(2024, 2, 5)},
            ],
        )
        controller = RecurrenceController(admin_store)

        by_months = await controller.report()
        by_payments = await controller.report(RecurrenceFilters(sort_by="payments"))

        assert [r.client.name for r in by_months] == ["Antiga", "Empresa Teste"]
        assert by_months[0].months_active == 3
        assert [r.client.name for r in by_payments] == ["Empresa Teste", "Antiga"]
        assert by_payments[0].total_payments == 2

    @pytest.mark.asyncio
    async def test_filters_and_export(self, admin_store, tenant, make_account):
        await make_account("parada@empresa.com", "senha123", name="Parada", status=ClientStatus.INATIVO, columns=False)
        controller = RecurrenceController(admin_store)

        inactive = await controller.report(RecurrenceFilters(status=ClientStatus.INATIVO))
        content = await controller.export_csv(RecurrenceFilters(search="empresa"))

        assert [r.client.name for r in inactive] == ["Parada"]
        lines = content.splitlines()
        assert lines[0].startswith("Nome do Cliente,Total de Pagamentos")
        assert len(lines) == 2
        assert lines[1].startswith("Empresa Teste,0,,")

    @pytest.mark.asyncio
    async def test_tenant_denied(self, tenant_store):
        with pytest.raises(AccessDenied):
            await RecurrenceController(tenant_store).report()


class TestMonthBounds:
    """Tests for parsing the forecast month."""

    def test_bounds(self):
        assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds("2023-12") == (date(2023, 12, 1), date(2023, 12, 31))

    @pytest.mark.parametrize("value", ["2024-13", "março", "2024"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            month_bounds(value)

    def test_filename(self):
        assert forecast_filename("2024-05") == "previsao-2024-05.csv"


class TestForecast:
    """Tests for the per-day forecast."""

    def test_to_csv(self):
        forecast = Forecast(month="2030-05", days=[ForecastDay(date(2030, 5, 10), ["A", "B"], 150.0)])

        assert forecast.to_csv() == "Data,Clientes,Total\n10/05/2030,A; B,150.00\n"
        assert forecast.total == 150.0

    @pytest.mark.asyncio
    async def test_groups_pending_per_day(self, admin_store, tenant, make_account, gateway):
        beta = await make_account("beta@empresa.com", "senha123", name="Beta", columns=False)
        stopped = await make_account(
            "parada@empresa.com", "senha123", name="Parada", status=ClientStatus.INATIVO, columns=False
        )
        unknown = await make_account("semstatus@empresa.com", "senha123", name="Sem Status", columns=False)
        await gateway.update(schema.CLIENTS, {"status": None}, [eq("id", unknown.id)])

        def due(client_id, day, amount, status="pending"):
            return {"client_id": client_id, "amount": amount, "status": status, "due_date": date(2030, 5, day)}

        await gateway.insert(
            schema.PAYMENTS,
            [
                due(tenant.id, 10, 100),
                due(beta.id, 10, 80),
                due(tenant.id, 20, 50),
                due(tenant.id, 12, 300, status="paid"),
                due(stopped.id, 10, 999),
                due(unknown.id, 10, 999),
                {"client_id": tenant.id, "amount": 70, "status": "pending", "due_date": date(2030, 6, 1)},
            ],
        )

        forecast = await ForecastController(admin_store).forecast("2030-05")

        assert [d.day for d in forecast.days] == [date(2030, 5, 10), date(2030, 5, 20)]
        assert sorted(forecast.days[0].clients) == ["Beta", "Empresa Teste"]
        assert forecast.days[0].total == 180
        assert forecast.total == 230

    @pytest.mark.asyncio
    async def test_invalid_month(self, admin_store):
        with pytest.raises(ValidationError):
            await ForecastController(admin_store).forecast("maio")
