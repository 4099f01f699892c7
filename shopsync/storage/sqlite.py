"""SQLite storage backend for shopsync.

Local-first storage with:
- JSON documents per synchronized table
- A sync queue recording every local mutation in order
- Sync metadata for push/pull bookkeeping
"""

import contextlib
import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from shopsync.errors import LocalStoreError
from shopsync.types import (
    SOFT_DELETE_FLAG,
    SOFT_DELETE_TABLES,
    SYNC_COMPLETED,
    SYNC_PENDING,
    SyncOperation,
    SyncQueueItem,
    utc_now,
)

from .schema import init_db, validate_table_name

logger = logging.getLogger(__name__)


class SQLiteStore:
    """SQLite-based local store for shopsync.

    Features:
    - Zero-config local storage
    - Soft delete for products, hard delete elsewhere
    - Offline-first: every save/delete is queued in the same transaction
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    @contextlib.contextmanager
    def _connect(self):
        """Context manager that handles transactions AND closes connection.

        Commits on success, rolls back on any exception. sqlite errors are
        re-raised as LocalStoreError.
        """
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise LocalStoreError(f"Cannot open local store {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise LocalStoreError(f"Local store operation failed: {e}") from e
        except Exception as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    def close(self):
        """No persistent connections are held; kept for API symmetry."""
        pass

    def _init_db(self):
        with self._connect() as conn:
            init_db(conn)

    # === Helpers ===

    def _to_json(self, data: Any) -> str:
        return json.dumps(data, default=str)

    def _from_json(self, s: Optional[str]) -> Any:
        if not s:
            return None
        try:
            return json.loads(s)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable JSON document in local store")
            return None

    def _enqueue(
        self, conn: sqlite3.Connection, table: str, record_id: str, operation: SyncOperation, data
    ) -> int:
        """Append a queue item. Each mutation gets its own row; nothing is coalesced."""
        cursor = conn.execute(
            """INSERT INTO sync_queue
               (store_name, record_id, operation, data, created_at, synced)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (table, record_id, operation.value, self._to_json(data), utc_now(), SYNC_PENDING),
        )
        return cursor.lastrowid

    def _write_record(self, conn: sqlite3.Connection, table: str, entity: Dict[str, Any]):
        conn.execute(
            """INSERT INTO records (table_name, id, data, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(table_name, id) DO UPDATE SET
                   data = excluded.data,
                   updated_at = excluded.updated_at""",
            (table, str(entity["id"]), self._to_json(entity), utc_now()),
        )

    def _row_to_queue_item(self, row: sqlite3.Row) -> SyncQueueItem:
        return SyncQueueItem(
            id=row["id"],
            store_name=row["store_name"],
            operation=SyncOperation(row["operation"]),
            data=self._from_json(row["data"]) or {"id": row["record_id"]},
            created_at=row["created_at"],
            synced=row["synced"] == SYNC_COMPLETED,
            retry_count=row["retry_count"] or 0,
            last_error=row["last_error"],
            last_attempt_at=row["last_attempt_at"],
        )

    # === Records ===

    def save(self, table: str, entity: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or replace a record and queue an upsert in one transaction."""
        validate_table_name(table)
        if not entity.get("id"):
            raise LocalStoreError(f"Cannot save a {table} record without an id")

        with self._connect() as conn:
            self._write_record(conn, table, entity)
            self._enqueue(conn, table, str(entity["id"]), SyncOperation.UPSERT, entity)
        return entity

    def delete(self, table: str, entity_id: str) -> bool:
        """Delete a record and queue the delete in one transaction.

        Tables in SOFT_DELETE_TABLES keep the row with its active flag
        cleared; everything else is removed.
        """
        validate_table_name(table)

        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM records WHERE table_name = ? AND id = ?",
                (table, entity_id),
            ).fetchone()

            if row is not None and table in SOFT_DELETE_TABLES:
                data = self._from_json(row["data"]) or {"id": entity_id}
                data[SOFT_DELETE_FLAG] = False
                self._write_record(conn, table, data)
            elif row is not None:
                conn.execute(
                    "DELETE FROM records WHERE table_name = ? AND id = ?", (table, entity_id)
                )
            else:
                logger.debug(f"Delete of unknown local record {table}:{entity_id}, queueing anyway")

            self._enqueue(conn, table, entity_id, SyncOperation.DELETE, {"id": entity_id})

        return row is not None

    def get(self, table: str, entity_id: str) -> Optional[Dict[str, Any]]:
        validate_table_name(table)
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM records WHERE table_name = ? AND id = ?",
                (table, entity_id),
            ).fetchone()
        return self._from_json(row["data"]) if row else None

    def get_all(self, table: str) -> List[Dict[str, Any]]:
        """Get every local record of a table in insertion order."""
        validate_table_name(table)
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT data FROM records WHERE table_name = ? ORDER BY rowid",
                (table,),
            ).fetchall()
        return [doc for doc in (self._from_json(row["data"]) for row in rows) if doc is not None]

    def apply_remote(self, table: str, rows: List[Dict[str, Any]]) -> int:
        """Write remote rows over local copies without queueing them."""
        validate_table_name(table)
        written = 0
        with self._connect() as conn:
            for row in rows:
                if not isinstance(row, dict) or not row.get("id"):
                    logger.warning(f"Skipping remote {table} row without an id")
                    continue
                self._write_record(conn, table, row)
                written += 1
        return written

    # === Queue Operations ===

    def get_sync_queue(self, limit: Optional[int] = None) -> List[SyncQueueItem]:
        """Get unsynced queue items, oldest first."""
        query = "SELECT * FROM sync_queue WHERE synced = ? ORDER BY id"
        params: List[Any] = [SYNC_PENDING]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_queue_item(row) for row in rows]

    def mark_synced(self, queue_id: int) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE sync_queue SET synced = ?, synced_at = ? WHERE id = ?",
                (SYNC_COMPLETED, utc_now(), queue_id),
            )

    def record_sync_failure(self, queue_id: int, error: str) -> int:
        """Record a sync failure and increment retry count."""
        with self._connect() as conn:
            conn.execute(
                """UPDATE sync_queue
                   SET retry_count = COALESCE(retry_count, 0) + 1,
                       last_error = ?,
                       last_attempt_at = ?
                   WHERE id = ?""",
                (error[:500], utc_now(), queue_id),
            )
            row = conn.execute(
                "SELECT retry_count FROM sync_queue WHERE id = ?", (queue_id,)
            ).fetchone()
        return row["retry_count"] if row else 0

    def prune_synced(self, older_than_days: int = 7) -> int:
        """Delete synced queue rows older than the given number of days."""
        cutoff = (datetime.now(timezone.utc) - timedelta(days=older_than_days)).isoformat()
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM sync_queue WHERE synced = ? AND synced_at < ?",
                (SYNC_COMPLETED, cutoff),
            )
            count = cursor.rowcount
        if count:
            logger.info(f"Pruned {count} synced queue entries")
        return count

    def get_sync_status(self) -> Dict[str, Any]:
        """Get sync queue status with counts."""
        with self._connect() as conn:
            pending = conn.execute(
                "SELECT COUNT(*) FROM sync_queue WHERE synced = ?", (SYNC_PENDING,)
            ).fetchone()[0]
            synced = conn.execute(
                "SELECT COUNT(*) FROM sync_queue WHERE synced = ?", (SYNC_COMPLETED,)
            ).fetchone()[0]
            failing = conn.execute(
                "SELECT COUNT(*) FROM sync_queue WHERE synced = ? AND retry_count > 0",
                (SYNC_PENDING,),
            ).fetchone()[0]
            table_rows = conn.execute(
                """SELECT store_name, COUNT(*) as count
                   FROM sync_queue WHERE synced = ?
                   GROUP BY store_name""",
                (SYNC_PENDING,),
            ).fetchall()

        return {
            "pending": pending,
            "synced": synced,
            "failing": failing,
            "by_table": {row["store_name"]: row["count"] for row in table_rows},
            "last_push_at": self.get_meta("last_push_at"),
            "last_pull_at": self.get_meta("last_pull_at"),
        }

    # === Sync Metadata ===

    def get_meta(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM sync_meta WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set_meta(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sync_meta (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, utc_now()),
            )
