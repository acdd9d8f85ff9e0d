"""
Kanban board: lead partitioning, board editing and drag-and-drop.
"""

from conectalead.kanban.board import DEFAULT_COLUMNS, BoardService, partition_leads, seed_default_columns
from conectalead.kanban.dragdrop import DragController

__all__ = ["DEFAULT_COLUMNS", "BoardService", "DragController", "partition_leads", "seed_default_columns"]
