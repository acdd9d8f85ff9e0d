"""
Pytest fixtures for ConectaLead tests.

Every test gets its own in-memory SQLite backend. Accounts are created
through the local auth service (with cheap bcrypt rounds) so sign-in,
identity resolution and the gateway all run for real.
"""

from datetime import date, timedelta

import pytest
import pytest_asyncio

from conectalead.contracts import schema
from conectalead.contracts.enums import ClientStatus, Role
from conectalead.gateway import Backend
from conectalead.gateway.sql import SqlAuthService, SqlGateway, create_schema, create_sql_engine
from conectalead.kanban import seed_default_columns
from conectalead.settings import Settings
from conectalead.store import AppStore

TENANT_EMAIL = "contato@empresa.com.br"
TENANT_PASSWORD = "senha123"
ADMIN_EMAIL = "gestor@conectalead.com.br"
ADMIN_PASSWORD = "admin123"


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment."""
    return Settings(
        BACKEND="sql",
        DATABASE_URL="sqlite://",
        JWT_SECRET="test-secret",
        SESSION_FILE=tmp_path / "session",
        PREFERENCES_DIR=tmp_path / "preferences",
    )


@pytest_asyncio.fixture
async def backend(settings):
    """In-memory self-hosted backend."""
    engine = create_sql_engine(settings.DATABASE_URL)
    create_schema(engine)
    gateway = SqlGateway(engine)
    auth = SqlAuthService(gateway, secret=settings.JWT_SECRET, bcrypt_rounds=4)
    backend = Backend(gateway=gateway, auth=auth)
    yield backend
    await backend.close()


@pytest.fixture
def gateway(backend):
    return backend.gateway


@pytest.fixture
def make_account(backend):
    """Factory: create an account, optionally with a client row and default board."""

    async def _make(
        email: str = TENANT_EMAIL,
        password: str = TENANT_PASSWORD,
        role: Role = Role.CLIENT,
        client: bool = True,
        status: ClientStatus = ClientStatus.ATIVO,
        name: str = "Empresa Teste",
        columns: bool = True,
        **client_fields,
    ):
        identity = await backend.auth.sign_up(email, password, role)
        if client:
            await backend.gateway.insert(
                schema.CLIENTS,
                {
                    "id": identity.id,
                    "name": name,
                    "email": email,
                    "whatsapp": "11999998888",
                    "status": status.value,
                    "expiration_date": date.today() + timedelta(days=30),
                    **client_fields,
                },
            )
            if columns:
                await seed_default_columns(backend.gateway, identity.id)
        return identity

    return _make


@pytest.fixture
def sign_in(backend, settings):
    """
    Factory: sign in with a fresh auth service over the shared database
    and return a resolved store.
    """

    async def _sign_in(email: str, password: str) -> AppStore:
        auth = SqlAuthService(backend.gateway, secret=settings.JWT_SECRET, bcrypt_rounds=4)
        store = AppStore(Backend(gateway=backend.gateway, auth=auth), settings)
        await auth.sign_in(email, password)
        await store.resolve_identity()
        return store

    return _sign_in


@pytest_asyncio.fixture
async def tenant(make_account):
    return await make_account()


@pytest_asyncio.fixture
async def tenant_store(tenant, sign_in):
    """Store signed in as an active client with the default board."""
    return await sign_in(TENANT_EMAIL, TENANT_PASSWORD)


@pytest_asyncio.fixture
async def admin_store(make_account, sign_in):
    """Store signed in as an administrator."""
    await make_account(ADMIN_EMAIL, ADMIN_PASSWORD, role=Role.ADMIN, client=False)
    return await sign_in(ADMIN_EMAIL, ADMIN_PASSWORD)
