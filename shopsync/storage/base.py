"""Local store protocol for shopsync.

This defines the interface the sync engine and entity facade rely on.
Currently supported:
- SQLiteStore: durable local-first storage with a sync queue
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from shopsync.types import SyncQueueItem


@runtime_checkable
class LocalStore(Protocol):
    """Durable per-table record storage with a pending-operations log.

    Every ``save`` and ``delete`` appends exactly one queue item before
    returning. ``apply_remote`` writes rows fetched from the remote service
    and does not touch the queue.
    """

    def save(self, table: str, entity: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or replace a record and queue an upsert."""
        ...

    def delete(self, table: str, entity_id: str) -> bool:
        """Delete (soft or hard, per table) and queue a delete.

        Returns:
            True if a local row existed.
        """
        ...

    def get(self, table: str, entity_id: str) -> Optional[Dict[str, Any]]:
        ...

    def get_all(self, table: str) -> List[Dict[str, Any]]:
        ...

    def apply_remote(self, table: str, rows: List[Dict[str, Any]]) -> int:
        """Overwrite local copies with remote rows. Returns rows written."""
        ...

    def get_sync_queue(self, limit: Optional[int] = None) -> List[SyncQueueItem]:
        """Unsynced queue items, oldest first."""
        ...

    def mark_synced(self, queue_id: int) -> None:
        ...

    def record_sync_failure(self, queue_id: int, error: str) -> int:
        """Record a failed push attempt. Returns the new retry count."""
        ...

    def get_sync_status(self) -> Dict[str, Any]:
        ...

    def get_meta(self, key: str) -> Optional[str]:
        ...

    def set_meta(self, key: str, value: str) -> None:
        ...

    def prune_synced(self, older_than_days: int = 7) -> int:
        ...
