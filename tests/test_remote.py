"""Tests for the Supabase remote adapter."""

from unittest.mock import MagicMock, patch

import pytest

import shopsync.remote as remote_module
from shopsync.config import Settings
from shopsync.errors import RemoteError
from shopsync.remote import RemoteService, SupabaseRemote, get_supabase_client


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def remote(client):
    return SupabaseRemote(client)


class TestSupabaseRemote:
    def test_satisfies_protocol(self, remote):
        assert isinstance(remote, RemoteService)

    @pytest.mark.asyncio
    async def test_upsert(self, remote, client):
        row = {"id": "p1", "name": "Soap"}

        await remote.upsert("products", row)

        client.table.assert_called_once_with("products")
        client.table.return_value.upsert.assert_called_once_with(row)
        client.table.return_value.upsert.return_value.execute.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_filters_by_id(self, remote, client):
        await remote.update("products", {"is_active": False}, "p1")

        table = client.table.return_value
        table.update.assert_called_once_with({"is_active": False})
        table.update.return_value.eq.assert_called_once_with("id", "p1")
        table.update.return_value.eq.return_value.execute.assert_called_once()

    @pytest.mark.asyncio
    async def test_delete_filters_by_id(self, remote, client):
        await remote.delete("receipts", "r1")

        table = client.table.return_value
        table.delete.assert_called_once_with()
        table.delete.return_value.eq.assert_called_once_with("id", "r1")

    @pytest.mark.asyncio
    async def test_select_all(self, remote, client):
        execute = client.table.return_value.select.return_value.execute
        execute.return_value = MagicMock(data=[{"id": "c1"}, {"id": "c2"}])

        rows = await remote.select_all("categories")

        client.table.return_value.select.assert_called_once_with("*")
        assert rows == [{"id": "c1"}, {"id": "c2"}]

    @pytest.mark.asyncio
    async def test_select_all_empty(self, remote, client):
        client.table.return_value.select.return_value.execute.return_value = MagicMock(data=None)

        assert await remote.select_all("returns") == []

    @pytest.mark.asyncio
    async def test_errors_wrapped(self, remote, client):
        client.table.return_value.upsert.return_value.execute.side_effect = Exception(
            "duplicate key value violates unique constraint"
        )

        with pytest.raises(RemoteError) as exc_info:
            await remote.upsert("receipts", {"id": "r1"})

        assert exc_info.value.table == "receipts"
        assert exc_info.value.operation == "upsert"
        assert "duplicate key" in str(exc_info.value)


class TestGetSupabaseClient:
    @pytest.fixture(autouse=True)
    def reset_client(self, monkeypatch):
        monkeypatch.setattr(remote_module, "_supabase_client", None)

    def test_requires_url_and_key(self):
        settings = Settings(_env_file=None, supabase_url="https://x.supabase.co")

        with pytest.raises(ValueError, match="SHOPSYNC_SUPABASE_KEY"):
            get_supabase_client(settings)

    def test_client_cached(self):
        settings = Settings(
            _env_file=None, supabase_url="https://x.supabase.co", supabase_key="anon"
        )
        with patch.object(remote_module, "create_client", return_value="client") as create:
            first = get_supabase_client(settings)
            second = get_supabase_client(settings)

        assert first == second == "client"
        create.assert_called_once_with("https://x.supabase.co", "anon")
