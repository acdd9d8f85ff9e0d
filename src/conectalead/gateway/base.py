"""
Remote Data Gateway Base

Abstract interface for the remote backend: table-scoped CRUD plus an
auth session API.
Implementations: REST (hosted backend-as-a-service), SQL (self-hosted).

Every remote failure is raised as GatewayError (AuthError for auth).
Rows are plain dicts; callers parse them into contracts models.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from conectalead.contracts.enums import Role, SessionEvent
from conectalead.contracts.models import AuthSession, Identity
from conectalead.errors import GatewayError

logger = logging.getLogger(__name__)

Row = dict[str, Any]


# =============================================================================
# Query building blocks
# =============================================================================


@dataclass(frozen=True)
class Filter:
    """A predicate on one column."""

    column: str
    op: str
    value: Any


OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "in", "ilike", "is")


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def neq(column: str, value: Any) -> Filter:
    return Filter(column, "neq", value)


def gt(column: str, value: Any) -> Filter:
    return Filter(column, "gt", value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column, "gte", value)


def lt(column: str, value: Any) -> Filter:
    return Filter(column, "lt", value)


def lte(column: str, value: Any) -> Filter:
    return Filter(column, "lte", value)


def in_(column: str, values: list[Any]) -> Filter:
    return Filter(column, "in", list(values))


def ilike(column: str, pattern: str) -> Filter:
    """Case-insensitive match; '%' is the wildcard."""
    return Filter(column, "ilike", pattern)


def is_(column: str, value: bool | None) -> Filter:
    """IS NULL / IS TRUE / IS FALSE."""
    return Filter(column, "is", value)


@dataclass(frozen=True)
class Order:
    """Sort key."""

    column: str
    ascending: bool = True


@dataclass(frozen=True)
class Embed:
    """
    Nested selection of a related table by foreign key.

    filters apply to the embedded rows. With inner=True, parent rows with
    no matching embedded row are dropped from the result.
    """

    table: str
    columns: str = "*"
    inner: bool = False
    filters: tuple[Filter, ...] = field(default_factory=tuple)
    alias: str | None = None

    @property
    def key(self) -> str:
        return self.alias or self.table


# =============================================================================
# Gateway
# =============================================================================


class Gateway(ABC):
    """Table-scoped CRUD against the remote backend."""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: list[Filter] | None = None,
        order: list[Order] | None = None,
        embeds: list[Embed] | None = None,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[Row]:
        """Return matching rows, embeds nested under their key."""
        pass

    @abstractmethod
    async def insert(self, table: str, rows: Row | list[Row]) -> list[Row]:
        """Insert one or more rows and return them as stored."""
        pass

    @abstractmethod
    async def update(self, table: str, patch: Row, filters: list[Filter]) -> list[Row]:
        """Apply patch to matching rows and return them."""
        pass

    @abstractmethod
    async def delete(self, table: str, filters: list[Filter]) -> list[Row]:
        """Delete matching rows and return them."""
        pass

    async def select_one(
        self,
        table: str,
        filters: list[Filter] | None = None,
        order: list[Order] | None = None,
        embeds: list[Embed] | None = None,
        columns: str = "*",
    ) -> Row | None:
        """Return the first matching row or None."""
        rows = await self.select(table, filters=filters, order=order, embeds=embeds, limit=1, columns=columns)
        return rows[0] if rows else None

    async def close(self) -> None:
        """Release network/database resources."""
        pass

    @staticmethod
    def _require_filters(operation: str, table: str, filters: list[Filter] | None) -> None:
        if not filters:
            raise GatewayError(
                message=f"Refusing {operation} on '{table}' without filters",
                code="MISSING_FILTER",
            )


# =============================================================================
# Auth
# =============================================================================

SessionCallback = Callable[[SessionEvent, AuthSession | None], Awaitable[None] | None]


class AuthService(ABC):
    """Authentication API of the remote backend."""

    def __init__(self) -> None:
        self._listeners: list[SessionCallback] = []
        self.session: AuthSession | None = None

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password; emits SIGNED_IN."""
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """Terminate the session; emits SIGNED_OUT."""
        pass

    @abstractmethod
    async def get_current_user(self) -> Identity | None:
        """Identity of the current session, or None."""
        pass

    @abstractmethod
    async def update_password(self, new_password: str) -> None:
        """Change the password of the signed-in account."""
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str, role: Role = Role.CLIENT) -> Identity:
        """Create an account (admin provisioning)."""
        pass

    @abstractmethod
    async def reset_password_for_email(self, email: str) -> None:
        """Send a password reset email."""
        pass

    async def restore_session(self, session: AuthSession) -> Identity | None:
        """Adopt a previously persisted session without emitting events."""
        self.session = session
        return await self.get_current_user()

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """
        Subscribe to session events.

        Returns a function that removes the subscription.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _emit(self, event: SessionEvent, session: AuthSession | None) -> None:
        for callback in list(self._listeners):
            result = callback(event, session)
            if inspect.isawaitable(result):
                await result
