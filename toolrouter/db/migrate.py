"""Versioned, idempotent schema upgrades for the rate store database.

Each step in MIGRATIONS moves the schema from version N-1 to N and is applied
at most once; the reached version is recorded in schema_meta. Called on app
startup and by the sync script, so it must stay cheap when already current.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple

from .schema import (
    KV_EXPIRES_INDEX_DDL,
    SCHEMA_META_TABLE,
    connect,
    ensure_base_tables,
)

logger = logging.getLogger("toolrouter.db.migrate")

SCHEMA_VERSION_KEY = "schema_version"

# v1 stored one row per fetched table; the key/value layout supersedes it
LEGACY_RATE_TABLE = "forex_rates"


def _add_expiry_index(conn: sqlite3.Connection) -> None:
    conn.execute(KV_EXPIRES_INDEX_DDL)


def _drop_legacy_rate_table(conn: sqlite3.Connection) -> None:
    conn.execute(f"DROP TABLE IF EXISTS {LEGACY_RATE_TABLE}")


MIGRATIONS: Sequence[Tuple[int, Callable[[sqlite3.Connection], None]]] = (
    (1, _add_expiry_index),
    (2, _drop_legacy_rate_table),
)

CURRENT_SCHEMA_VERSION = MIGRATIONS[-1][0]


def read_schema_version(conn: sqlite3.Connection) -> Optional[int]:
    try:
        row = conn.execute(
            f"SELECT value FROM {SCHEMA_META_TABLE} WHERE key = ?",
            (SCHEMA_VERSION_KEY,),
        ).fetchone()
    except sqlite3.OperationalError:
        return None
    return int(row[0]) if row else None


def _write_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(
        f"INSERT INTO {SCHEMA_META_TABLE} (key, value) VALUES (?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
        (SCHEMA_VERSION_KEY, str(version)),
    )


def apply_migrations(db_path: Path) -> int:
    """Bring the database at db_path up to CURRENT_SCHEMA_VERSION and return it."""
    conn = connect(db_path)
    try:
        with conn:
            ensure_base_tables(conn)
            version = read_schema_version(conn) or 0
            for target, step in MIGRATIONS:
                if target <= version:
                    continue
                logger.info("migrating rate store schema to v%d", target)
                step(conn)
                _write_schema_version(conn, target)
                version = target
        return version
    finally:
        conn.close()
