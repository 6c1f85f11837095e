"""SQLite layout backing the key/value rate store.

  - kv_entries: one row per key; `expires_at` is epoch seconds (NULL = keep
    forever). Rows past their expiry read as missing and are purged on write.
  - schema_meta: bookkeeping for migrate.py (currently only schema_version).
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

KV_TABLE = "kv_entries"
SCHEMA_META_TABLE = "schema_meta"

KV_ENTRIES_DDL = f"""
CREATE TABLE IF NOT EXISTS {KV_TABLE} (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at REAL,
    updated_at TEXT NOT NULL DEFAULT ({UTC_NOW_SQL})
)
"""

SCHEMA_META_DDL = f"""
CREATE TABLE IF NOT EXISTS {SCHEMA_META_TABLE} (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""

KV_EXPIRES_INDEX_DDL = (
    f"CREATE INDEX IF NOT EXISTS idx_{KV_TABLE}_expires ON {KV_TABLE}(expires_at)"
)


def ensure_base_tables(conn: sqlite3.Connection) -> None:
    """Create the tables every schema version relies on; safe to repeat."""
    conn.execute(SCHEMA_META_DDL)
    conn.execute(KV_ENTRIES_DDL)


def connect(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn
