"""
Client-Side Cache Store

AppStore holds the session identity, the resolved tenant, the admin flag
and the currently loaded Kanban board. It is created once per session
(CLI invocation, test) and handed to every controller; there is no
module-level instance.

Mutations are written remotely first and mirrored locally:
- add/update/delete lead: local change only after remote success
- move lead: optimistic local move, rolled back if the remote write fails
Background loads never raise on remote failure; they log and keep the
previous state.
"""

import logging
from enum import Enum
from typing import Any, Callable

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, FollowupStatus, Role, SessionEvent
from conectalead.contracts.models import AuthSession, Client, Column, Identity, Lead
from conectalead.errors import GatewayError
from conectalead.gateway import Backend, Embed, Order, eq
from conectalead.kanban.board import partition_leads
from conectalead.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Identity resolution state."""

    UNRESOLVED = "unresolved"
    NO_USER = "no_user"
    ADMIN = "admin"
    TENANT_BOUND = "tenant_bound"
    TENANT_UNBOUND = "tenant_unbound"


class AppStore:
    """
    Session and board state for one user.

    Single writer: all mutations happen from the caller's task, awaited
    one at a time.
    """

    def __init__(self, backend: Backend, settings: Settings | None = None):
        self.backend = backend
        self.gateway = backend.gateway
        self.auth = backend.auth
        self.settings = settings or get_settings()

        self.user: Identity | None = None
        self.client: Client | None = None
        self.is_admin: bool = False
        self.is_loading: bool = True
        self.is_loading_data: bool = False
        self.columns: list[Column] = []
        self.leads: list[Lead] = []
        self.board_client_id: str | None = None

        self._unsubscribe: Callable[[], None] | None = None

    # =========================================================================
    # Identity
    # =========================================================================

    @property
    def state(self) -> SessionState:
        if self.is_loading:
            return SessionState.UNRESOLVED
        if self.user is None:
            return SessionState.NO_USER
        if self.is_admin:
            return SessionState.ADMIN
        if self.client is not None:
            return SessionState.TENANT_BOUND
        return SessionState.TENANT_UNBOUND

    @property
    def client_status(self) -> ClientStatus | None:
        return self.client.status if self.client else None

    def is_admin_identity(self, identity: Identity) -> bool:
        """
        Classify an identity as administrative.

        The role attribute decides when present. Without one, the legacy
        rule (email contains the admin marker) applies if enabled.
        """
        if identity.role is not None:
            return identity.role == Role.ADMIN

        if self.settings.LEGACY_ADMIN_DETECTION and self.settings.ADMIN_EMAIL_MARKER in identity.email.lower():
            logger.warning(
                f"Identity {identity.email} classified as admin by email substring; assign an explicit role",
                extra={"user_id": identity.id},
            )
            return True
        return False

    async def resolve_identity(self) -> SessionState:
        """
        Resolve the current session into admin or tenant.

        A tenant lookup failure leaves the identity in place with no
        tenant bound.
        """
        self.is_loading = True
        try:
            try:
                user = await self.auth.get_current_user()
            except GatewayError as e:
                logger.error(f"Error fetching user data: {e}")
                user = None

            self.user = user
            self.client = None
            self.is_admin = False

            if user is None:
                return SessionState.NO_USER

            if self.is_admin_identity(user):
                self.is_admin = True
                return SessionState.ADMIN

            try:
                row = await self.gateway.select_one(schema.CLIENTS, [eq("id", user.id)])
            except GatewayError as e:
                logger.error(f"Error fetching client for user {user.id}: {e}", extra={"user_id": user.id})
                row = None

            if row is None:
                logger.warning("No client bound to identity", extra={"user_id": user.id})
                return SessionState.TENANT_UNBOUND

            self.client = Client.model_validate(row)
            return SessionState.TENANT_BOUND
        finally:
            self.is_loading = False

    async def refresh_client(self) -> Client | None:
        """Re-read the bound tenant row after an edit."""
        if self.client is None:
            return None
        row = await self.gateway.select_one(schema.CLIENTS, [eq("id", self.client.id)])
        if row is not None:
            self.client = Client.model_validate(row)
        return self.client

    # =========================================================================
    # Session events
    # =========================================================================

    def attach(self) -> None:
        """Follow sign-in/sign-out events from the auth service."""
        if self._unsubscribe is None:
            self._unsubscribe = self.auth.on_session_change(self.handle_session_event)

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def handle_session_event(self, event: SessionEvent, session: AuthSession | None) -> None:
        if event == SessionEvent.SIGNED_IN:
            await self.resolve_identity()
        elif event == SessionEvent.SIGNED_OUT:
            self.clear()
            self.is_loading = False

    def clear(self) -> None:
        """Drop identity, tenant and board state."""
        self.user = None
        self.client = None
        self.is_admin = False
        self.columns = []
        self.leads = []
        self.board_client_id = None

    async def logout(self) -> None:
        """Sign out remotely and clear local state unconditionally."""
        try:
            await self.auth.sign_out()
        except GatewayError as e:
            logger.error(f"Error signing out: {e}")
        finally:
            self.clear()
            self.is_loading = False

    # =========================================================================
    # Board
    # =========================================================================

    async def fetch_columns_and_leads(self, client_id: str | None = None) -> None:
        """
        Load columns and leads for a tenant.

        Defaults to the bound tenant. An admin with no target loads every
        tenant's board. Leaves state untouched on failure.
        """
        target = client_id or (self.client.id if self.client else None)
        if not target and not self.is_admin:
            logger.warning("No client id available to load the board")
            return

        filters = [eq("client_id", target)] if target else []
        self.is_loading_data = True
        try:
            column_rows = await self.gateway.select(
                schema.COLUMNS,
                filters=filters,
                order=[Order("order"), Order("created_at")],
            )
            followup_rows = await self.gateway.select(
                schema.LEADS,
                filters=filters,
                columns="id",
                embeds=[
                    Embed(
                        schema.FOLLOWUPS,
                        columns="id",
                        inner=True,
                        filters=(eq("status", FollowupStatus.SCHEDULED.value),),
                    )
                ],
            )
            lead_rows = await self.gateway.select(
                schema.LEADS,
                filters=filters,
                order=[Order("created_at")],
            )
        except GatewayError as e:
            logger.error(f"Error fetching columns and leads: {e}", extra={"client_id": target})
            return
        finally:
            self.is_loading_data = False

        with_followup = {row["id"] for row in followup_rows}
        leads = [Lead.model_validate({**row, "has_followup": row["id"] in with_followup}) for row in lead_rows]
        columns = [Column.model_validate(row) for row in column_rows]

        self.leads = leads
        self.columns = partition_leads(columns, leads)
        self.board_client_id = target

    def _repartition(self) -> None:
        self.columns = partition_leads(self.columns, self.leads)

    def find_lead(self, lead_id: str) -> Lead | None:
        return next((lead for lead in self.leads if lead.id == lead_id), None)

    def _replace_lead(self, lead: Lead) -> None:
        self.leads = [lead if item.id == lead.id else item for item in self.leads]

    async def move_lead(self, lead_id: str, column_id: str) -> Lead | None:
        """
        Move a lead to another column.

        Applied locally first; if the remote write fails the local move
        is rolled back and GatewayError is raised. Unknown leads and
        same-column moves are no-ops.
        """
        lead = self.find_lead(lead_id)
        if lead is None:
            logger.warning(f"Move ignored: lead {lead_id} is not loaded")
            return None
        if lead.column_id == column_id:
            return lead

        previous = lead.column_id
        moved = lead.model_copy(update={"column_id": column_id})
        self._replace_lead(moved)
        self._repartition()

        try:
            await self.gateway.update(schema.LEADS, {"column_id": column_id}, [eq("id", lead_id)])
        except GatewayError as e:
            logger.error(f"Error moving lead {lead_id}: {e}", extra={"lead_id": lead_id})
            self._replace_lead(moved.model_copy(update={"column_id": previous}))
            self._repartition()
            raise

        return moved

    async def add_lead(self, data: dict[str, Any]) -> Lead:
        """Create a lead; column_id and client_id are required."""
        try:
            rows = await self.gateway.insert(schema.LEADS, data)
        except GatewayError as e:
            logger.error(f"Error adding lead: {e}")
            raise

        lead = Lead.model_validate(rows[0])
        self.leads = [*self.leads, lead]
        self._repartition()
        return lead

    async def update_lead(self, lead_id: str, patch: dict[str, Any]) -> Lead | None:
        try:
            rows = await self.gateway.update(schema.LEADS, patch, [eq("id", lead_id)])
        except GatewayError as e:
            logger.error(f"Error updating lead {lead_id}: {e}", extra={"lead_id": lead_id})
            raise

        if not rows:
            return None

        current = self.find_lead(lead_id)
        lead = Lead.model_validate(
            {
                **rows[0],
                "has_followup": current.has_followup if current else False,
                "labels": current.labels if current else [],
            }
        )
        if current is not None:
            self._replace_lead(lead)
            self._repartition()
        return lead

    async def delete_lead(self, lead_id: str) -> None:
        try:
            await self.gateway.delete(schema.LEADS, [eq("id", lead_id)])
        except GatewayError as e:
            logger.error(f"Error deleting lead {lead_id}: {e}", extra={"lead_id": lead_id})
            raise

        self.leads = [lead for lead in self.leads if lead.id != lead_id]
        self._repartition()
