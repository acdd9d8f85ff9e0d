"""
Drag-and-drop surface of the Kanban board.

The dragged lead id is transient gesture state held here, never in the
store. Read-only boards never record an id, so no drop can move a lead.
"""

import logging
from typing import TYPE_CHECKING

from conectalead.contracts.models import Lead

if TYPE_CHECKING:
    from conectalead.store import AppStore

logger = logging.getLogger(__name__)


class DragController:
    """Translates drag gestures into store moves."""

    def __init__(self, store: "AppStore", read_only: bool = False):
        self.store = store
        self.read_only = read_only
        self.dragged_lead_id: str | None = None

    def drag_start(self, lead_id: str) -> bool:
        """Record the dragged lead. Returns False when dragging is disabled."""
        if self.read_only:
            return False
        self.dragged_lead_id = lead_id
        return True

    def drag_over(self, column_id: str | None = None) -> bool:
        """Accept the hover so the drop is allowed."""
        return True

    def cancel(self) -> None:
        self.dragged_lead_id = None

    async def drop(self, column_id: str) -> Lead | None:
        """
        Move the recorded lead into column_id and end the gesture.

        Without a preceding drag_start nothing happens.
        """
        lead_id = self.dragged_lead_id
        if lead_id is None or self.read_only:
            return None
        try:
            return await self.store.move_lead(lead_id, column_id)
        finally:
            self.dragged_lead_id = None
