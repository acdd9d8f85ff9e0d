"""
Base class for screen controllers.
"""

from typing import TYPE_CHECKING

from conectalead.contracts.models import Client
from conectalead.errors import AccessDenied

if TYPE_CHECKING:
    from conectalead.store import AppStore


class Controller:
    """A screen controller bound to one session store."""

    def __init__(self, store: "AppStore"):
        self.store = store
        self.gateway = store.gateway
        self.auth = store.auth
        self.settings = store.settings

    def require_admin(self) -> None:
        if not self.store.is_admin:
            raise AccessDenied("Administrator access required")

    def require_client(self) -> Client:
        if self.store.client is None:
            raise AccessDenied("No client is bound to this account")
        return self.store.client
