"""
Lead report for a client, with filters and CSV export.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from conectalead.contracts import schema
from conectalead.contracts.models import Lead
from conectalead.export import to_csv
from conectalead.gateway import Embed, Order, eq
from conectalead.services.base import Controller

REPORT_HEADERS = ["Nome", "Telefone", "Coluna", "Data de Criação", "Interesse"]
REPORT_FILENAME = "relatorio-leads.csv"


@dataclass
class ReportRow:
    lead: Lead
    column_name: str

    def as_csv_row(self) -> list:
        return [self.lead.name, self.lead.phone, self.column_name, self.lead.created_at, self.lead.interest]


@dataclass
class ReportFilters:
    search: str = ""
    column: str = ""
    start_date: date | None = None
    end_date: date | None = None

    def matches(self, row: ReportRow) -> bool:
        if self.search and self.search.lower() not in row.lead.name.lower():
            return False
        if self.column and self.column.lower() not in row.column_name.lower():
            return False
        created = row.lead.created_at
        if self.start_date and (created is None or created < datetime.combine(self.start_date, datetime.min.time())):
            return False
        if self.end_date:
            end = datetime.combine(self.end_date, datetime.min.time()) + timedelta(days=1)
            if created is None or created >= end:
                return False
        return True


class ReportsController(Controller):
    """Leads of the bound client, newest first."""

    async def load(self) -> list[ReportRow]:
        client = self.require_client()
        rows = await self.gateway.select(
            schema.LEADS,
            [eq("client_id", client.id)],
            order=[Order("created_at", ascending=False)],
            embeds=[Embed(schema.COLUMNS)],
        )
        return [
            ReportRow(lead=Lead.model_validate(row), column_name=(row.get(schema.COLUMNS) or {}).get("name", ""))
            for row in rows
        ]

    async def filtered(self, filters: ReportFilters | None = None) -> list[ReportRow]:
        filters = filters or ReportFilters()
        return [row for row in await self.load() if filters.matches(row)]

    async def export_csv(self, filters: ReportFilters | None = None) -> str:
        rows = await self.filtered(filters)
        return to_csv(REPORT_HEADERS, (row.as_csv_row() for row in rows))


def columns_in(rows: list[ReportRow]) -> list[str]:
    """Distinct column names, in first-seen order, for the filter dropdown."""
    return list(dict.fromkeys(row.column_name for row in rows if row.column_name))
