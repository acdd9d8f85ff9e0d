"""
Per-client display preferences, stored locally as JSON
(one file per client, nothing is sent to the backend).
"""

import json
import logging
from enum import Enum
from pathlib import Path

import pydantic
from pydantic import BaseModel, Field

from conectalead.errors import ValidationError

logger = logging.getLogger(__name__)


class DefaultView(str, Enum):
    KANBAN = "kanban"
    LIST = "list"
    TABLE = "table"


class Preferences(BaseModel):
    default_view: DefaultView = DefaultView.KANBAN
    show_canceled_leads: bool = True
    auto_refresh_interval: int = Field(5, ge=1, le=60, description="Minutes")


class PreferencesStore:
    """Reads and writes preferences_<client id>.json under a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, client_id: str) -> Path:
        return self.directory / f"preferences_{client_id}.json"

    def load(self, client_id: str) -> Preferences:
        """Saved preferences, or defaults when missing or unreadable."""
        path = self.path_for(client_id)
        if not path.exists():
            return Preferences()
        try:
            return Preferences.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (ValueError, pydantic.ValidationError) as e:
            logger.warning(f"Ignoring unreadable preferences file {path}: {e}")
            return Preferences()

    def save(self, client_id: str, preferences: Preferences) -> Path:
        path = self.path_for(client_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(preferences.model_dump_json(indent=2), encoding="utf-8")
        return path

    def update(self, client_id: str, **changes) -> Preferences:
        """Apply changes on top of the saved preferences and persist them."""
        current = self.load(client_id).model_dump()
        current.update({k: v for k, v in changes.items() if v is not None})
        try:
            preferences = Preferences.model_validate(current)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            raise ValidationError(first["msg"], field=str(first["loc"][0]) if first["loc"] else None) from e
        self.save(client_id, preferences)
        return preferences
