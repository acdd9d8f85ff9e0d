"""
Tests for the route guard.
"""

import pytest

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus
from conectalead.contracts.models import Identity
from conectalead.gateway import Backend, eq
from conectalead.gateway.sql import SqlAuthService
from conectalead.guard import AccessGuard, GuardAction, Route, restricted_screen
from conectalead.store import AppStore, SessionState

from conftest import TENANT_EMAIL, TENANT_PASSWORD


class RolelessAuth(SqlAuthService):
    """Reports an identity without a role attribute."""

    async def get_current_user(self):
        return Identity(id="legacy-admin", email="admin@example.com")


class RoleStrippedAuth(SqlAuthService):
    """Reports the signed-in identity without its role."""

    async def get_current_user(self):
        identity = await super().get_current_user()
        return identity.model_copy(update={"role": None}) if identity else None


@pytest.fixture
def guard():
    return AccessGuard()


class TestAccessGuard:
    """Tests for navigation decisions."""

    @pytest.mark.asyncio
    async def test_waits_while_loading(self, guard, backend, settings):
        store = AppStore(backend, settings)
        decision = guard.check(Route.DASHBOARD, store)
        assert decision.action == GuardAction.WAIT

    @pytest.mark.asyncio
    async def test_anonymous_goes_to_login(self, guard, backend, settings):
        store = AppStore(backend, settings)
        await store.resolve_identity()

        decision = guard.check(Route.KANBAN, store)

        assert decision.action == GuardAction.REDIRECT
        assert decision.target == Route.LOGIN
        assert guard.check(Route.LOGIN, store).allowed

    @pytest.mark.asyncio
    async def test_active_tenant_renders(self, guard, tenant_store):
        assert guard.check(Route.DASHBOARD, tenant_store).allowed
        assert guard.check(Route.KANBAN, tenant_store).allowed

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [ClientStatus.INATIVO, ClientStatus.VENCIDO])
    async def test_restricted_tenant_goes_to_expired(self, guard, make_account, sign_in, status):
        await make_account(TENANT_EMAIL, TENANT_PASSWORD, status=status)
        store = await sign_in(TENANT_EMAIL, TENANT_PASSWORD)

        decision = guard.check(Route.DASHBOARD, store)

        assert decision.action == GuardAction.REDIRECT
        assert decision.target == Route.EXPIRED
        assert guard.check(Route.EXPIRED, store).allowed

    @pytest.mark.asyncio
    async def test_pending_tenant_keeps_access(self, guard, make_account, sign_in):
        await make_account(TENANT_EMAIL, TENANT_PASSWORD, status=ClientStatus.PENDENTE)
        store = await sign_in(TENANT_EMAIL, TENANT_PASSWORD)

        assert guard.check(Route.DASHBOARD, store).allowed

    @pytest.mark.asyncio
    async def test_admin_bypasses_status(self, guard, admin_store):
        assert guard.check(Route.ADMIN_CLIENTS, admin_store).allowed
        assert guard.check(Route.DASHBOARD, admin_store).allowed

    @pytest.mark.asyncio
    async def test_legacy_admin_email(self, guard, backend, settings):
        """An identity without a role whose email contains "admin" is an administrator."""
        auth = RolelessAuth(backend.gateway, secret=settings.JWT_SECRET)
        store = AppStore(Backend(gateway=backend.gateway, auth=auth), settings)

        await store.resolve_identity()

        assert store.is_admin is True
        assert guard.check(Route.ADMIN_PAYMENTS, store).allowed

    @pytest.mark.asyncio
    async def test_tenant_blocked_from_admin_screens(self, guard, tenant_store):
        decision = guard.check(Route.ADMIN_CLIENTS, tenant_store)

        assert decision.target == Route.DASHBOARD

    @pytest.mark.asyncio
    async def test_unbound_account_goes_to_login(self, guard, make_account, sign_in):
        await make_account("sem.cliente@empresa.com", "senha123", client=False)
        store = await sign_in("sem.cliente@empresa.com", "senha123")

        decision = guard.check(Route.DASHBOARD, store)

        assert decision.target == Route.LOGIN


class TestSessionScenario:
    """A restricted tenant signs out and an administrator signs in on the same store."""

    @pytest.mark.asyncio
    async def test_inactive_tenant_then_legacy_admin(self, guard, make_account, gateway, settings):
        tenant = await make_account(TENANT_EMAIL, TENANT_PASSWORD)
        await gateway.update(schema.CLIENTS, {"status": "inactive"}, [eq("id", tenant.id)])
        await make_account("admin@conectalead.com.br", "admin123", client=False)
        auth = RoleStrippedAuth(gateway, secret=settings.JWT_SECRET, bcrypt_rounds=4)
        store = AppStore(Backend(gateway=gateway, auth=auth), settings)

        await auth.sign_in(TENANT_EMAIL, TENANT_PASSWORD)
        await store.resolve_identity()

        assert store.client.status == ClientStatus.INATIVO
        decision = guard.check(Route.DASHBOARD, store)
        assert decision.action == GuardAction.REDIRECT
        assert decision.target == Route.EXPIRED

        await store.logout()

        assert store.state == SessionState.NO_USER
        assert guard.check(Route.DASHBOARD, store).target == Route.LOGIN

        await auth.sign_in("admin@conectalead.com.br", "admin123")
        await store.resolve_identity()

        assert store.is_admin is True
        assert guard.check(Route.DASHBOARD, store).allowed


class TestRestrictedScreen:
    def test_support_link(self, settings):
        screen = restricted_screen(settings)

        assert screen.title == "Acesso Restrito"
        assert screen.support_url.startswith(f"https://wa.me/{settings.SUPPORT_WHATSAPP}?text=")
