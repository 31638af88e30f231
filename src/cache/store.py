"""
Key-value store backends for the persistent cache.

Both backends expose the same small interface (get / set / remove / keys)
and have a finite capacity: a write of a new key beyond `max_entries`
raises StorageFullError, which the TTL cache handles by evicting. Any other
backend failure surfaces as CacheStoreError.
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional

from src.common.errors import CacheStoreError, StorageFullError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Interface for string key-value stores with finite capacity."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Dict-backed store, mostly useful for tests and short-lived processes."""

    def __init__(self, max_entries: int = 5000):
        self.max_entries = max_entries
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if key not in self._data and len(self._data) >= self.max_entries:
            raise StorageFullError(f"Memory store full ({self.max_entries} entries)")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def __len__(self) -> int:
        return len(self._data)


class SqliteStore(KeyValueStore):
    """
    SQLite-backed store that survives process restarts.

    Uses one thread-local connection per thread, since the transport may run
    inside an executor thread.
    """

    def __init__(self, path: str = "data/cache/wikigraph_cache.db", max_entries: int = 5000):
        self.path = Path(path)
        self.max_entries = max_entries
        self._local = threading.local()
        if str(self.path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        logger.info("SQLite cache store at %s (max_entries=%d)", self.path, max_entries)

    def _connection(self) -> sqlite3.Connection:
        if getattr(self._local, "connection", None) is None:
            conn = sqlite3.connect(str(self.path), check_same_thread=False, timeout=30.0)
            if str(self.path) != ":memory:":
                conn.execute("PRAGMA journal_mode=WAL")
            self._local.connection = conn
        return self._local.connection

    def _init_schema(self) -> None:
        conn = self._connection()
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS cache_entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        conn.commit()

    def get(self, key: str) -> Optional[str]:
        try:
            row = self._connection().execute(
                "SELECT value FROM cache_entries WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise CacheStoreError(f"SQLite read failed: {exc}") from exc
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self._connection()
        try:
            exists = conn.execute("SELECT 1 FROM cache_entries WHERE key = ?", (key,)).fetchone()
            if not exists:
                (count,) = conn.execute("SELECT COUNT(*) FROM cache_entries").fetchone()
                if count >= self.max_entries:
                    raise StorageFullError(f"SQLite store full ({self.max_entries} entries)")
            conn.execute(
                "INSERT OR REPLACE INTO cache_entries (key, value) VALUES (?, ?)",
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            if "full" in str(exc).lower():
                raise StorageFullError(str(exc)) from exc
            raise CacheStoreError(f"SQLite write failed: {exc}") from exc

    def remove(self, key: str) -> None:
        conn = self._connection()
        try:
            conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise CacheStoreError(f"SQLite delete failed: {exc}") from exc

    def keys(self) -> List[str]:
        try:
            rows = self._connection().execute("SELECT key FROM cache_entries").fetchall()
        except sqlite3.Error as exc:
            raise CacheStoreError(f"SQLite scan failed: {exc}") from exc
        return [row[0] for row in rows]

    def close(self) -> None:
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None
