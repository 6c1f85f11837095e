"""Key/value backends for the rate store.

Both backends store plain strings with a physical time-to-live. Expired
entries read as missing; nothing is raised for an absent key.

  - SQLiteKeyValueStore: default, single file (settings.db_path)
  - RedisKeyValueStore: settings.kv_backend = "redis"
"""

from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Mapping, Optional, Protocol, TYPE_CHECKING

import redis

from .schema import connect

if TYPE_CHECKING:  # pragma: no cover
    from toolrouter.core.config import Settings

logger = logging.getLogger("toolrouter.kv")


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def set_many(self, items: Mapping[str, str], ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...


class SQLiteKeyValueStore:
    def __init__(self, db_path: Path, clock: Callable[[], float] = time.time):
        self.db_path = db_path
        self._clock = clock

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Connection scoped to one transaction; committed on success, always closed."""
        conn = connect(self.db_path)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "SELECT value FROM kv_entries WHERE key = ? AND (expires_at IS NULL OR expires_at > ?)",
                (key, self._clock()),
            )
            row = cur.fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.set_many({key: value}, ttl_seconds)

    def set_many(self, items: Mapping[str, str], ttl_seconds: int) -> None:
        """Write every item in one transaction, purging expired rows first."""
        now = self._clock()
        expires_at = now + ttl_seconds if ttl_seconds > 0 else None
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "DELETE FROM kv_entries WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (now,),
            )
            cur.executemany(
                """
                INSERT INTO kv_entries (key, value, expires_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    expires_at = excluded.expires_at,
                    updated_at = (strftime('%Y-%m-%dT%H:%M:%fZ','now'))
                """,
                [(k, v, expires_at) for k, v in items.items()],
            )

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))


class RedisKeyValueStore:
    def __init__(self, client: "redis.Redis"):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[str]:
        value = self._client.get(key)
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._client.set(key, value, ex=ttl_seconds if ttl_seconds > 0 else None)

    def set_many(self, items: Mapping[str, str], ttl_seconds: int) -> None:
        pipe = self._client.pipeline(transaction=True)
        for key, value in items.items():
            pipe.set(key, value, ex=ttl_seconds if ttl_seconds > 0 else None)
        pipe.execute()

    def delete(self, key: str) -> None:
        self._client.delete(key)


def make_kv_store(settings: "Settings") -> KeyValueStore:
    if settings.kv_backend == "redis":
        logger.info("using redis rate store")
        return RedisKeyValueStore.from_url(settings.redis_url)
    if settings.db_path is None:
        raise ValueError("db_path is required for the sqlite rate store")
    return SQLiteKeyValueStore(Path(settings.db_path))
