"""
Admin: payment control.

Two views:
- per-client billing status with monthly figures (received, pending,
  next month), confirmed/unmarked by the admin
- the payments ledger grouped by reference month

Month boundaries are evaluated in Brasília time (UTC-3).
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, PaymentStatus
from conectalead.contracts.models import Client, Payment
from conectalead.errors import ValidationError
from conectalead.gateway import Embed, Order, eq
from conectalead.services.base import Controller

logger = logging.getLogger(__name__)

BRASILIA = timezone(timedelta(hours=-3))

MONTH_NAMES = [
    "Janeiro",
    "Fevereiro",
    "Março",
    "Abril",
    "Maio",
    "Junho",
    "Julho",
    "Agosto",
    "Setembro",
    "Outubro",
    "Novembro",
    "Dezembro",
]

STATUS_LABELS = {
    PaymentStatus.PAID: "Pago",
    PaymentStatus.PENDING: "Pendente",
    PaymentStatus.LATE: "Atrasado",
    PaymentStatus.CANCELLED: "Cancelado",
}


def brasilia_today() -> date:
    return datetime.now(BRASILIA).date()


def format_reference_month(value: date) -> str:
    """Março/2024"""
    return f"{MONTH_NAMES[value.month - 1]}/{value.year}"


def _same_month(value: date | None, year: int, month: int) -> bool:
    return value is not None and value.year == year and value.month == month


def _next_month(today: date) -> tuple[int, int]:
    return (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)


@dataclass
class MonthlyStats:
    received: float = 0.0
    pending: float = 0.0
    next_month: float = 0.0


def monthly_stats(clients: list[Client], today: date | None = None) -> MonthlyStats:
    """
    received:   monthly fee of clients whose payment date is this month
    pending:    active clients due this month and not confirmed
    next_month: active clients due next month and not confirmed
    """
    today = today or brasilia_today()
    next_year, next_month = _next_month(today)
    stats = MonthlyStats()

    for client in clients:
        fee = client.monthly_fee or 0.0
        if _same_month(client.last_payment_date, today.year, today.month):
            stats.received += fee
        if client.status != ClientStatus.ATIVO or client.payment_confirmed:
            continue
        if _same_month(client.next_due_date, today.year, today.month):
            stats.pending += fee
        elif _same_month(client.next_due_date, next_year, next_month):
            stats.next_month += fee

    return stats


def client_payment_status(client: Client, today: date | None = None) -> PaymentStatus:
    """Pago when confirmed, Atrasado once the due date has passed, else Pendente."""
    today = today or brasilia_today()
    if client.payment_confirmed:
        return PaymentStatus.PAID
    if client.next_due_date and client.next_due_date < today:
        return PaymentStatus.LATE
    return PaymentStatus.PENDING


def display_status(payment: Payment, today: date | None = None) -> PaymentStatus:
    """Stored status, with pending payments past due shown as late."""
    today = today or brasilia_today()
    if payment.status == PaymentStatus.PENDING and payment.due_date and payment.due_date < today:
        return PaymentStatus.LATE
    return payment.status


@dataclass
class ClientBillingFilters:
    search: str = ""
    status: ClientStatus | None = None
    payment: PaymentStatus | None = None
    start: date | None = None
    end: date | None = None

    def matches(self, client: Client, today: date) -> bool:
        if self.search and self.search.lower() not in client.name.lower():
            return False
        if self.status and client.status != self.status:
            return False
        if self.payment and client_payment_status(client, today) != self.payment:
            return False
        if self.start and (client.next_due_date is None or client.next_due_date < self.start):
            return False
        if self.end and (client.next_due_date is None or client.next_due_date > self.end):
            return False
        return True


@dataclass
class LedgerFilters:
    search: str = ""
    status: PaymentStatus | str | None = None
    month: str | None = None  # YYYY-MM; None lists every month

    def matches(self, payment: Payment) -> bool:
        name = payment.client.name if payment.client else ""
        if self.search and self.search.lower() not in name.lower():
            return False
        if self.status and self.status != "all" and payment.status != PaymentStatus(self.status):
            return False
        if self.month:
            if payment.reference_month is None or payment.reference_month.strftime("%Y-%m") != self.month:
                return False
        return True


@dataclass
class MonthGroup:
    month: str
    payments: list[Payment] = field(default_factory=list)
    total: float = 0.0


def current_month() -> str:
    return brasilia_today().strftime("%Y-%m")


class PaymentsController(Controller):
    """Payment confirmation and ledger."""

    async def billing_clients(
        self, filters: ClientBillingFilters | None = None, today: date | None = None
    ) -> tuple[list[Client], MonthlyStats]:
        """Clients ordered by next due date, with this month's figures."""
        self.require_admin()
        today = today or brasilia_today()
        rows = await self.gateway.select(schema.CLIENTS, order=[Order("next_due_date")])
        clients = [Client.model_validate(r) for r in rows]
        stats = monthly_stats(clients, today)
        if filters:
            clients = [c for c in clients if filters.matches(c, today)]
        return clients, stats

    async def confirm_payment(self, client_id: str, reference_month: date, payment_date: date) -> Payment:
        """Record a paid payment and mark the client as paid and active."""
        self.require_admin()
        row = await self.gateway.select_one(schema.CLIENTS, [eq("id", client_id)])
        if row is None:
            raise ValidationError(f"Client {client_id} not found", field="client_id")
        client = Client.model_validate(row)

        paid_early = client.next_due_date is not None and payment_date < client.next_due_date
        rows = await self.gateway.insert(
            schema.PAYMENTS,
            {
                "client_id": client_id,
                "reference_month": reference_month.replace(day=1),
                "due_date": client.next_due_date,
                "payment_date": payment_date,
                "paid_early": paid_early,
                "amount": client.monthly_fee,
                "status": PaymentStatus.PAID.value,
            },
        )
        await self.gateway.update(
            schema.CLIENTS,
            {
                "last_payment_date": payment_date,
                "payment_confirmed": True,
                "status": ClientStatus.ATIVO.value,
            },
            [eq("id", client_id)],
        )
        logger.info(f"Payment confirmed for client {client_id}", extra={"client_id": client_id})
        return Payment.model_validate(rows[0])

    async def unmark_payment(self, client_id: str) -> None:
        """Undo a confirmation: the client goes back to pendente."""
        self.require_admin()
        await self.gateway.update(
            schema.CLIENTS,
            {
                "last_payment_date": None,
                "payment_confirmed": False,
                "status": ClientStatus.PENDENTE.value,
            },
            [eq("id", client_id)],
        )

    async def ledger(self, filters: LedgerFilters | None = None) -> list[MonthGroup]:
        """Payments grouped by reference month, newest month first."""
        self.require_admin()
        filters = filters if filters is not None else LedgerFilters(month=current_month())

        rows = await self.gateway.select(
            schema.PAYMENTS,
            order=[Order("reference_month", ascending=False)],
            embeds=[Embed(schema.CLIENTS, columns="id,name,status")],
        )
        payments = [p for p in (Payment.model_validate(r) for r in rows) if filters.matches(p)]

        groups: dict[str, MonthGroup] = defaultdict(lambda: MonthGroup(month=""))
        for payment in payments:
            key = payment.reference_month.strftime("%Y-%m") if payment.reference_month else "----"
            group = groups[key]
            group.month = key
            group.payments.append(payment)
            group.total += payment.amount
        return sorted(groups.values(), key=lambda g: g.month, reverse=True)
