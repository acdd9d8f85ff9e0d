"""
Tests for the client profile and local display preferences.
"""

import pytest

from conftest import TENANT_EMAIL, TENANT_PASSWORD
from conectalead.errors import AccessDenied, AuthError, ValidationError
from conectalead.services import ProfileController
from conectalead.services.preferences import DefaultView, Preferences, PreferencesStore


class TestProfile:
    """Tests for company name and password changes."""

    @pytest.mark.asyncio
    async def test_rename_refreshes_store(self, tenant_store):
        client = await ProfileController(tenant_store).rename("  Nova Razão  ")

        assert client.name == "Nova Razão"
        assert tenant_store.client.name == "Nova Razão"

    @pytest.mark.asyncio
    async def test_rename_requires_name(self, tenant_store):
        with pytest.raises(ValidationError):
            await ProfileController(tenant_store).rename("   ")

    @pytest.mark.asyncio
    async def test_rename_without_client(self, admin_store):
        with pytest.raises(AccessDenied):
            await ProfileController(admin_store).rename("Admin")

    @pytest.mark.asyncio
    async def test_password_mismatch(self, tenant_store):
        with pytest.raises(ValidationError) as exc_info:
            await ProfileController(tenant_store).change_password("segredo1", "segredo2")

        assert exc_info.value.field == "confirm_password"

    @pytest.mark.asyncio
    async def test_password_too_short(self, tenant_store):
        with pytest.raises(ValidationError) as exc_info:
            await ProfileController(tenant_store).change_password("abc", "abc")

        assert exc_info.value.field == "new_password"

    @pytest.mark.asyncio
    async def test_change_password(self, tenant_store, sign_in):
        await ProfileController(tenant_store).change_password("novasenha", "novasenha")

        store = await sign_in(TENANT_EMAIL, "novasenha")
        assert store.client is not None
        with pytest.raises(AuthError):
            await sign_in(TENANT_EMAIL, TENANT_PASSWORD)

    @pytest.mark.asyncio
    async def test_request_password_reset(self, tenant_store):
        assert await ProfileController(tenant_store).request_password_reset() == TENANT_EMAIL


class TestPreferencesStore:
    """Tests for the JSON preferences file."""

    def test_defaults_when_missing(self, tmp_path):
        preferences = PreferencesStore(tmp_path).load("client-1")

        assert preferences == Preferences()
        assert preferences.default_view == DefaultView.KANBAN
        assert preferences.auto_refresh_interval == 5

    def test_save_and_load(self, tmp_path):
        store = PreferencesStore(tmp_path / "prefs")
        store.save("client-1", Preferences(default_view=DefaultView.TABLE, show_canceled_leads=False))

        loaded = store.load("client-1")

        assert (tmp_path / "prefs" / "preferences_client-1.json").exists()
        assert loaded.default_view == DefaultView.TABLE
        assert loaded.show_canceled_leads is False
        assert store.load("client-2") == Preferences()

    def test_unreadable_file(self, tmp_path):
        store = PreferencesStore(tmp_path)
        store.path_for("client-1").write_text("{not json", encoding="utf-8")

        assert store.load("client-1") == Preferences()

    def test_update_keeps_other_fields(self, tmp_path):
        store = PreferencesStore(tmp_path)
        store.update("client-1", default_view=DefaultView.LIST)

        updated = store.update("client-1", auto_refresh_interval=30)

        assert updated.default_view == DefaultView.LIST
        assert updated.auto_refresh_interval == 30
        assert store.load("client-1") == updated

    @pytest.mark.parametrize("interval", [0, 61])
    def test_update_interval_range(self, tmp_path, interval):
        store = PreferencesStore(tmp_path)

        with pytest.raises(ValidationError) as exc_info:
            store.update("client-1", auto_refresh_interval=interval)

        assert exc_info.value.field == "auto_refresh_interval"
        assert not store.path_for("client-1").exists()
