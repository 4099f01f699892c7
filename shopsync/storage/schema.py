"""Database schema for the shopsync SQLite store."""

import sqlite3

from shopsync.errors import UnknownTableError
from shopsync.types import SYNCED_TABLES

SCHEMA_VERSION = 1

ALLOWED_TABLES = frozenset(SYNCED_TABLES)


def validate_table_name(table: str) -> str:
    """Validate table name against the synchronized-table allowlist.

    Raises:
        UnknownTableError: If the table is not synchronized.
    """
    if table not in ALLOWED_TABLES:
        raise UnknownTableError(table)
    return table


SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Entity documents, one row per (table, id)
CREATE TABLE IF NOT EXISTS records (
    table_name TEXT NOT NULL,
    id TEXT NOT NULL,
    data TEXT NOT NULL,  -- JSON document
    updated_at TEXT NOT NULL,
    PRIMARY KEY (table_name, id)
);

-- Pending local mutations, replayed in id order
CREATE TABLE IF NOT EXISTS sync_queue (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    store_name TEXT NOT NULL,
    record_id TEXT NOT NULL,
    operation TEXT NOT NULL,  -- upsert, delete
    data TEXT NOT NULL,  -- JSON payload
    created_at TEXT NOT NULL,
    synced INTEGER DEFAULT 0,  -- 0 = pending, 1 = synced
    synced_at TEXT,
    retry_count INTEGER DEFAULT 0,
    last_error TEXT,
    last_attempt_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_sync_queue_synced ON sync_queue(synced);
CREATE INDEX IF NOT EXISTS idx_sync_queue_store ON sync_queue(store_name);

-- Sync metadata (last push/pull times)
CREATE TABLE IF NOT EXISTS sync_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


def init_db(conn: sqlite3.Connection) -> None:
    """Create tables if needed and record the schema version."""
    conn.executescript(SCHEMA)
    conn.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
