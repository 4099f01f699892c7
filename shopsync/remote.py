"""Remote service adapter for shopsync.

The sync engine talks to the remote dataset through ``RemoteService``.
``SupabaseRemote`` implements it on top of the synchronous supabase client,
running each postgrest call in a worker thread.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from supabase import Client, create_client

from .config import Settings, get_settings
from .errors import RemoteError

logger = logging.getLogger(__name__)

Rows = Union[Dict[str, Any], List[Dict[str, Any]]]


@runtime_checkable
class RemoteService(Protocol):
    """Per-table operations the sync engine needs from the remote service."""

    async def upsert(self, table: str, rows: Rows) -> None:
        ...

    async def update(self, table: str, patch: Dict[str, Any], record_id: str) -> None:
        ...

    async def delete(self, table: str, record_id: str) -> None:
        ...

    async def select_all(self, table: str) -> List[Dict[str, Any]]:
        ...


_supabase_client: Optional[Client] = None


def get_supabase_client(settings: Optional[Settings] = None) -> Client:
    """Get cached Supabase client."""
    global _supabase_client
    if _supabase_client is None:
        if settings is None:
            settings = get_settings()
        if not settings.supabase_url or not settings.supabase_key:
            raise ValueError("Both SHOPSYNC_SUPABASE_URL and SHOPSYNC_SUPABASE_KEY must be set")
        _supabase_client = create_client(settings.supabase_url, settings.supabase_key)
    return _supabase_client


class SupabaseRemote:
    """RemoteService backed by a supabase ``Client``.

    Args:
        client: A configured supabase client. Upserts conflict on ``id``.
    """

    def __init__(self, client: Client):
        self._client = client

    async def _run(self, table: str, operation: str, query):
        try:
            return await asyncio.to_thread(query)
        except Exception as e:
            raise RemoteError(f"{operation} on {table} failed: {e}", table, operation) from e

    async def upsert(self, table: str, rows: Rows) -> None:
        def _upsert():
            return self._client.table(table).upsert(rows).execute()

        await self._run(table, "upsert", _upsert)

    async def update(self, table: str, patch: Dict[str, Any], record_id: str) -> None:
        def _update():
            return self._client.table(table).update(patch).eq("id", record_id).execute()

        await self._run(table, "update", _update)

    async def delete(self, table: str, record_id: str) -> None:
        def _delete():
            return self._client.table(table).delete().eq("id", record_id).execute()

        await self._run(table, "delete", _delete)

    async def select_all(self, table: str) -> List[Dict[str, Any]]:
        def _select():
            return self._client.table(table).select("*").execute()

        result = await self._run(table, "select", _select)
        return list(result.data or [])
