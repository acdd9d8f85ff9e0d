"""
Kanban board operations.

partition_leads() is the single place where leads are assigned to
column partitions; the store calls it after every load and mutation.
BoardService wraps column, lead and label editing for one board and
refuses every mutation when the board is opened read-only.
"""

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from conectalead.contracts import schema
from conectalead.contracts.enums import ColumnColor
from conectalead.contracts.models import Column, Label, Lead
from conectalead.errors import AccessDenied, GatewayError, ValidationError
from conectalead.gateway import Embed, Gateway, Order, eq, in_

if TYPE_CHECKING:
    from conectalead.store import AppStore

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = [
    ("Novos Leads", 1, ColumnColor.BLUE),
    ("Em Contato", 2, ColumnColor.YELLOW),
    ("Reunião Agendada", 3, ColumnColor.PURPLE),
    ("Fechado", 4, ColumnColor.GREEN),
]


def partition_leads(columns: list[Column], leads: list[Lead]) -> list[Column]:
    """
    Return copies of columns whose leads hold exactly the leads pointing
    at them. Leads of columns that are not loaded land nowhere.
    """
    by_column: dict[str, list[Lead]] = defaultdict(list)
    for lead in leads:
        by_column[lead.column_id].append(lead)
    return [column.model_copy(update={"leads": list(by_column.get(column.id, []))}) for column in columns]


async def seed_default_columns(gateway: Gateway, client_id: str) -> list[Column]:
    """Create the four default columns for a new tenant."""
    rows = await gateway.insert(
        schema.COLUMNS,
        [
            {"name": name, "order": order, "color": color.value, "client_id": client_id}
            for name, order, color in DEFAULT_COLUMNS
        ],
    )
    return sorted((Column.model_validate(r) for r in rows), key=lambda c: c.order)


class BoardService:
    """Editing operations on the board currently loaded in the store."""

    def __init__(self, store: "AppStore", read_only: bool = False):
        self.store = store
        self.gateway = store.gateway
        self.read_only = read_only

    def _ensure_writable(self) -> None:
        if self.read_only:
            raise AccessDenied("Board is open in read-only mode")

    def _client_id(self) -> str:
        client_id = self.store.board_client_id or (self.store.client.id if self.store.client else None)
        if not client_id:
            raise ValidationError("No client board is loaded")
        return client_id

    async def load(self, client_id: str | None = None) -> list[Column]:
        """Load the board and attach labels to its leads."""
        await self.store.fetch_columns_and_leads(client_id)
        await self.load_labels()
        return self.store.columns

    async def reload(self) -> list[Column]:
        return await self.load(self.store.board_client_id)

    def _column(self, column_id: str) -> Column:
        column = next((c for c in self.store.columns if c.id == column_id), None)
        if column is None:
            raise ValidationError(f"Column {column_id} is not on this board", field="column_id")
        return column

    # =========================================================================
    # Columns
    # =========================================================================

    async def add_column(self, name: str, color: ColumnColor | str = ColumnColor.BLUE) -> Column:
        """Append a column at the right end of the board."""
        self._ensure_writable()
        name = name.strip()
        if not name:
            raise ValidationError("Column name is required", field="name")
        try:
            color = ColumnColor(color)
        except ValueError:
            raise ValidationError(f"Unknown color: {color}", field="color") from None

        rows = await self.gateway.insert(
            schema.COLUMNS,
            {
                "name": name,
                "order": max((c.order for c in self.store.columns), default=0) + 1,
                "color": color.value,
                "client_id": self._client_id(),
            },
        )
        await self.reload()
        return Column.model_validate(rows[0])

    async def rename_column(self, column_id: str, name: str) -> None:
        self._ensure_writable()
        name = name.strip()
        if not name:
            raise ValidationError("Column name is required", field="name")
        self._column(column_id)
        await self.gateway.update(schema.COLUMNS, {"name": name}, [eq("id", column_id)])
        await self.reload()

    async def set_column_color(self, column_id: str, color: ColumnColor | str) -> None:
        self._ensure_writable()
        try:
            color = ColumnColor(color)
        except ValueError:
            raise ValidationError(f"Unknown color: {color}", field="color") from None
        self._column(column_id)
        await self.gateway.update(schema.COLUMNS, {"color": color.value}, [eq("id", column_id)])
        await self.reload()

    async def delete_column(self, column_id: str) -> int:
        """
        Delete a column, moving its leads to the first remaining column.

        The last column of a board cannot be deleted. Returns the number
        of leads moved.
        """
        self._ensure_writable()
        self._column(column_id)
        remaining = [c for c in self.store.columns if c.id != column_id]
        if not remaining:
            raise ValidationError("Cannot delete the last column", field="column_id")

        target = remaining[0]
        moved = await self.gateway.update(schema.LEADS, {"column_id": target.id}, [eq("column_id", column_id)])
        await self.gateway.delete(schema.COLUMNS, [eq("id", column_id)])
        logger.info(
            f"Deleted column {column_id}, moved {len(moved)} leads to {target.name}",
            extra={"column_id": column_id, "target_column_id": target.id},
        )
        await self.reload()
        return len(moved)

    async def reorder_columns(self, column_ids: list[str]) -> None:
        """Rewrite column order to match column_ids (left to right)."""
        self._ensure_writable()
        current = {c.id for c in self.store.columns}
        if set(column_ids) != current or len(column_ids) != len(current):
            raise ValidationError("Column list does not match the board", field="column_ids")

        for index, column_id in enumerate(column_ids):
            await self.gateway.update(schema.COLUMNS, {"order": index}, [eq("id", column_id)])
        await self.reload()

    async def move_column(self, column_id: str, new_index: int) -> None:
        ids = [c.id for c in self.store.columns]
        self._column(column_id)
        ids.remove(column_id)
        new_index = max(0, min(new_index, len(ids)))
        ids.insert(new_index, column_id)
        await self.reorder_columns(ids)

    # =========================================================================
    # Leads
    # =========================================================================

    async def add_lead(
        self,
        column_id: str,
        name: str,
        phone: str,
        interest: str | None = None,
        notes: str | None = None,
    ) -> Lead:
        """Add a lead to a column; name and phone are required."""
        self._ensure_writable()
        if not name or not name.strip():
            raise ValidationError("Name is required", field="name")
        if not phone or not phone.strip():
            raise ValidationError("Phone is required", field="phone")
        self._column(column_id)

        return await self.store.add_lead(
            {
                "name": name.strip(),
                "phone": phone.strip(),
                "interest": interest or None,
                "notes": notes or None,
                "column_id": column_id,
                "client_id": self._client_id(),
            }
        )

    async def update_lead(self, lead_id: str, **fields: Any) -> Lead | None:
        """Update name, phone, interest or notes."""
        self._ensure_writable()
        allowed = {"name", "phone", "interest", "notes"}
        patch = {k: v for k, v in fields.items() if k in allowed and v is not None}
        if "name" in patch and not patch["name"].strip():
            raise ValidationError("Name is required", field="name")
        if not patch:
            return self.store.find_lead(lead_id)
        return await self.store.update_lead(lead_id, patch)

    async def delete_lead(self, lead_id: str) -> None:
        self._ensure_writable()
        await self.store.delete_lead(lead_id)

    async def move_lead(self, lead_id: str, column_id: str) -> Lead | None:
        self._ensure_writable()
        self._column(column_id)
        return await self.store.move_lead(lead_id, column_id)

    # =========================================================================
    # Labels
    # =========================================================================

    async def list_labels(self) -> list[Label]:
        rows = await self.gateway.select(
            schema.LABELS, [eq("client_id", self._client_id())], order=[Order("name")]
        )
        return [Label.model_validate(r) for r in rows]

    async def create_label(self, name: str, color: str = ColumnColor.BLUE.value) -> Label:
        self._ensure_writable()
        name = name.strip()
        if not name:
            raise ValidationError("Label name is required", field="name")
        rows = await self.gateway.insert(
            schema.LABELS, {"name": name, "color": color, "client_id": self._client_id()}
        )
        return Label.model_validate(rows[0])

    async def delete_label(self, label_id: str) -> None:
        self._ensure_writable()
        await self.gateway.delete(schema.LEAD_LABELS, [eq("label_id", label_id)])
        await self.gateway.delete(schema.LABELS, [eq("id", label_id)])
        self.store.leads = [
            lead.model_copy(update={"labels": [lb for lb in lead.labels if lb.id != label_id]})
            for lead in self.store.leads
        ]
        self.store._repartition()

    async def load_labels(self) -> None:
        """Attach assigned labels to the loaded leads."""
        lead_ids = [lead.id for lead in self.store.leads]
        if not lead_ids:
            return
        try:
            rows = await self.gateway.select(
                schema.LEAD_LABELS,
                [in_("lead_id", lead_ids)],
                embeds=[Embed(schema.LABELS, inner=True)],
            )
        except GatewayError as e:
            logger.error(f"Error fetching labels: {e}")
            return

        by_lead: dict[str, list[Label]] = defaultdict(list)
        for row in rows:
            by_lead[row["lead_id"]].append(Label.model_validate(row[schema.LABELS]))

        self.store.leads = [
            lead.model_copy(update={"labels": by_lead.get(lead.id, [])}) for lead in self.store.leads
        ]
        self.store._repartition()

    def _set_labels(self, lead_id: str, labels: list[Label]) -> None:
        self.store.leads = [
            lead.model_copy(update={"labels": labels}) if lead.id == lead_id else lead
            for lead in self.store.leads
        ]
        self.store._repartition()

    async def assign_label(self, lead_id: str, label: Label) -> None:
        """Attach a label; shown immediately, undone if the write fails."""
        self._ensure_writable()
        lead = self.store.find_lead(lead_id)
        if lead is None:
            raise ValidationError(f"Lead {lead_id} is not on this board", field="lead_id")
        if any(lb.id == label.id for lb in lead.labels):
            return

        previous = list(lead.labels)
        self._set_labels(lead_id, [*previous, label])
        try:
            await self.gateway.insert(schema.LEAD_LABELS, {"lead_id": lead_id, "label_id": label.id})
        except GatewayError:
            self._set_labels(lead_id, previous)
            raise

    async def remove_label(self, lead_id: str, label_id: str) -> None:
        """Detach a label; hidden immediately, restored if the write fails."""
        self._ensure_writable()
        lead = self.store.find_lead(lead_id)
        if lead is None:
            raise ValidationError(f"Lead {lead_id} is not on this board", field="lead_id")

        previous = list(lead.labels)
        self._set_labels(lead_id, [lb for lb in previous if lb.id != label_id])
        try:
            await self.gateway.delete(schema.LEAD_LABELS, [eq("lead_id", lead_id), eq("label_id", label_id)])
        except GatewayError:
            self._set_labels(lead_id, previous)
            raise
