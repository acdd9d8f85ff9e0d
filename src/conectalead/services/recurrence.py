"""
Admin: recurrence report.

Per client: how many payments were made, first and last payment, and
how long the account has existed (in 30-day months).
"""

from dataclasses import dataclass
from datetime import date

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, PaymentStatus, PlanType
from conectalead.contracts.models import Client, Payment, utcnow
from conectalead.export import to_csv
from conectalead.gateway import Embed, Order
from conectalead.services.base import Controller

RECURRENCE_HEADERS = [
    "Nome do Cliente",
    "Total de Pagamentos",
    "Primeiro Pagamento",
    "Último Pagamento",
    "Meses Ativo",
    "Status",
    "Plano",
]
RECURRENCE_FILENAME = "relatorio-recorrencia.csv"


@dataclass
class RecurrenceRow:
    client: Client
    total_payments: int
    first_payment: date | None
    last_payment: date | None
    months_active: int

    def as_csv_row(self) -> list:
        return [
            self.client.name,
            self.total_payments,
            self.first_payment,
            self.last_payment,
            self.months_active,
            self.client.status.value if self.client.status else "",
            self.client.plan_type.value if self.client.plan_type else "",
        ]


@dataclass
class RecurrenceFilters:
    search: str = ""
    status: ClientStatus | None = None
    plan_type: PlanType | None = None
    sort_by: str = "months"  # months | payments

    def matches(self, row: RecurrenceRow) -> bool:
        if self.search and self.search.lower() not in row.client.name.lower():
            return False
        if self.status and row.client.status != self.status:
            return False
        if self.plan_type and row.client.plan_type != self.plan_type:
            return False
        return True


def build_row(client: Client, payments: list[Payment], today: date | None = None) -> RecurrenceRow:
    today = today or utcnow().date()
    paid = sorted(p.payment_date for p in payments if p.status == PaymentStatus.PAID and p.payment_date)
    months = (today - client.created_at.date()).days // 30 if client.created_at else 0
    return RecurrenceRow(
        client=client,
        total_payments=len(paid),
        first_payment=paid[0] if paid else None,
        last_payment=paid[-1] if paid else None,
        months_active=max(months, 0),
    )


class RecurrenceController(Controller):
    """Client retention report."""

    async def report(self, filters: RecurrenceFilters | None = None, today: date | None = None) -> list[RecurrenceRow]:
        self.require_admin()
        filters = filters or RecurrenceFilters()

        rows = await self.gateway.select(
            schema.CLIENTS,
            order=[Order("name")],
            embeds=[Embed(schema.PAYMENTS, columns="id,client_id,payment_date,status,amount")],
        )
        report = []
        for row in rows:
            client = Client.model_validate(row)
            payments = [Payment.model_validate(p) for p in row.get(schema.PAYMENTS) or []]
            report.append(build_row(client, payments, today))

        report = [r for r in report if filters.matches(r)]
        if filters.sort_by == "payments":
            report.sort(key=lambda r: r.total_payments, reverse=True)
        else:
            report.sort(key=lambda r: r.months_active, reverse=True)
        return report

    async def export_csv(self, filters: RecurrenceFilters | None = None) -> str:
        rows = await self.report(filters)
        return to_csv(RECURRENCE_HEADERS, (r.as_csv_row() for r in rows))
