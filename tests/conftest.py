"""
Pytest fixtures and test configuration for shopsync tests.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from shopsync.connectivity import ManualConnectivity
from shopsync.engine import SyncEngine
from shopsync.facade import EntityFacade
from shopsync.storage import SQLiteStore


class FakeRemote:
    """In-memory RemoteService that records every call in order.

    ``failures`` maps (operation, table) to an exception to raise.
    Setting ``gate`` blocks every call until the event is set; ``entered``
    fires when a call is blocked.
    """

    def __init__(self):
        self.rows: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, str, Optional[str]]] = []
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.gate: Optional[asyncio.Event] = None
        self.entered: Optional[asyncio.Event] = None

    async def _enter(self, operation: str, table: str, record_id: Optional[str]):
        self.calls.append((operation, table, record_id))
        if self.gate is not None:
            if self.entered is not None:
                self.entered.set()
            await self.gate.wait()
        error = self.failures.get((operation, table))
        if error is not None:
            raise error

    async def upsert(self, table, rows):
        rows_list = rows if isinstance(rows, list) else [rows]
        await self._enter("upsert", table, rows_list[0].get("id") if rows_list else None)
        for row in rows_list:
            self.rows.setdefault(table, {})[row["id"]] = dict(row)

    async def update(self, table, patch, record_id):
        await self._enter("update", table, record_id)
        if record_id in self.rows.get(table, {}):
            self.rows[table][record_id].update(patch)

    async def delete(self, table, record_id):
        await self._enter("delete", table, record_id)
        self.rows.get(table, {}).pop(record_id, None)

    async def select_all(self, table):
        await self._enter("select", table, None)
        return [dict(row) for row in self.rows.get(table, {}).values()]

    def upserted(self) -> List[Tuple[str, Optional[str]]]:
        return [(table, rid) for op, table, rid in self.calls if op == "upsert"]


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database path."""
    return tmp_path / "shop.db"


@pytest.fixture
def store(temp_db):
    """Create a SQLiteStore instance for testing."""
    store = SQLiteStore(temp_db)
    yield store
    store.close()


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def connectivity():
    """Connectivity that starts offline."""
    return ManualConnectivity(online=False)


@pytest.fixture
def engine(store, remote, connectivity):
    """An unstarted engine; tests call ``await engine.start()``."""
    return SyncEngine(store, remote, connectivity)


@pytest.fixture
def facade(store, engine):
    return EntityFacade(store, engine)
