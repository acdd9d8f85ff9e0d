"""
Admin: billing forecast.

Pending payments due in a month, grouped per day. Payments of inactive
clients (or clients without a status) are left out.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, PaymentStatus
from conectalead.contracts.models import Payment
from conectalead.errors import ValidationError
from conectalead.export import to_csv
from conectalead.gateway import Embed, Order, eq, gte, lte
from conectalead.services.base import Controller
from conectalead.services.payments import current_month

FORECAST_HEADERS = ["Data", "Clientes", "Total"]


def forecast_filename(month: str) -> str:
    return f"previsao-{month}.csv"


@dataclass
class ForecastDay:
    day: date
    clients: list[str] = field(default_factory=list)
    total: float = 0.0


@dataclass
class Forecast:
    month: str
    days: list[ForecastDay] = field(default_factory=list)

    @property
    def total(self) -> float:
        return sum(d.total for d in self.days)

    def to_csv(self) -> str:
        return to_csv(
            FORECAST_HEADERS,
            ([d.day, "; ".join(d.clients), f"{d.total:.2f}"] for d in self.days),
        )


def month_bounds(month: str) -> tuple[date, date]:
    """First and last day of a YYYY-MM month."""
    try:
        year, mon = (int(part) for part in month.split("-"))
        last = calendar.monthrange(year, mon)[1]
        return date(year, mon, 1), date(year, mon, last)
    except ValueError:
        raise ValidationError(f"Invalid month: {month} (expected YYYY-MM)", field="month") from None


class ForecastController(Controller):
    """Expected receipts per day."""

    async def forecast(self, month: str | None = None) -> Forecast:
        self.require_admin()
        month = month or current_month()
        start, end = month_bounds(month)

        rows = await self.gateway.select(
            schema.PAYMENTS,
            [gte("due_date", start), lte("due_date", end), eq("status", PaymentStatus.PENDING.value)],
            order=[Order("due_date")],
            embeds=[Embed(schema.CLIENTS, columns="id,name,status")],
        )

        days: dict[date, ForecastDay] = {}
        for row in rows:
            payment = Payment.model_validate(row)
            client = payment.client
            if client is None or client.status is None or client.status == ClientStatus.INATIVO:
                continue
            entry = days.setdefault(payment.due_date, ForecastDay(day=payment.due_date))
            entry.clients.append(client.name)
            entry.total += payment.amount

        return Forecast(month=month, days=sorted(days.values(), key=lambda d: d.day))
