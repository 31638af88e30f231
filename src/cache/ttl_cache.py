"""
Persistent TTL cache for SPARQL lookups.

Two namespaces share one key-value store:
- QID resolutions (name -> QID), kept for 24 hours
- per-entity connection lists, kept for 1 hour

Entries are stored as JSON `{"data": ..., "expires": <epoch seconds>}`.
The cache is best-effort: a failing store reads as a miss, and a write that
cannot be stored even after eviction is dropped, never raised.
"""

import json
import logging
import time
from typing import Any, Callable, Iterable, Optional

from src.common.errors import StorageFullError
from .store import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)

QID_NAMESPACE = "wg_qid_"
CONNECTION_NAMESPACE = "wg_conn_v2_"
NAMESPACES = (QID_NAMESPACE, CONNECTION_NAMESPACE)

QID_TTL = 24 * 60 * 60  # 24 hours
CONNECTION_TTL = 60 * 60  # 1 hour


class PersistentCache:
    """TTL cache over a KeyValueStore, scoped to this engine's namespaces."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        namespaces: Iterable[str] = NAMESPACES,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            store: Backing key-value store (in-memory store if omitted)
            namespaces: Key prefixes owned by this cache; eviction never touches other keys
            clock: Time source returning epoch seconds
        """
        self.store = store if store is not None else MemoryStore()
        self.namespaces = tuple(namespaces)
        self.clock = clock

    def _owns(self, key: str) -> bool:
        return key.startswith(self.namespaces)

    def _decode(self, raw: str) -> Optional[dict]:
        try:
            entry = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(entry, dict) or "expires" not in entry:
            return None
        return entry

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        """Return the cached value, or `default` when absent, expired or unreadable."""
        full_key = namespace + key
        try:
            raw = self.store.get(full_key)
            if raw is None:
                return default

            entry = self._decode(raw)
            if entry is None or self.clock() > entry["expires"]:
                self.store.remove(full_key)
                return default
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache read failed for %s: %s", full_key, exc)
            return default

        return entry.get("data")

    def set(self, namespace: str, key: str, value: Any, ttl: float) -> None:
        """Store `value` for `ttl` seconds; a write the store cannot take is dropped."""
        full_key = namespace + key
        payload = json.dumps({"data": value, "expires": self.clock() + ttl})
        try:
            self._write_with_eviction(full_key, payload)
        except StorageFullError:
            logger.warning("Dropping cache write for %s: store full", full_key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Dropping cache write for %s: %s", full_key, exc)

    def _write_with_eviction(self, full_key: str, payload: str) -> None:
        try:
            self.store.set(full_key, payload)
            return
        except StorageFullError:
            evicted = self.evict_expired()
            logger.info("Cache store full; evicted %d expired entries", evicted)

        try:
            self.store.set(full_key, payload)
            return
        except StorageFullError:
            cleared = self.clear_all()
            logger.warning("Cache store still full; cleared %d cache entries", cleared)

        self.store.set(full_key, payload)

    def evict_expired(self) -> int:
        """Remove expired (or undecodable) entries in all owned namespaces."""
        now = self.clock()
        evicted = 0
        for key in self.store.keys():
            if not self._owns(key):
                continue
            raw = self.store.get(key)
            if raw is None:
                continue
            entry = self._decode(raw)
            if entry is None or now > entry["expires"]:
                self.store.remove(key)
                evicted += 1
        return evicted

    def clear_all(self) -> int:
        """Remove every entry in the owned namespaces."""
        cleared = 0
        for key in self.store.keys():
            if self._owns(key):
                self.store.remove(key)
                cleared += 1
        return cleared

    # Convenience accessors for the two namespaces

    def get_qid(self, name: str, default: Any = None) -> Any:
        return self.get(QID_NAMESPACE, name, default)

    def set_qid(self, name: str, qid: Optional[str]) -> None:
        self.set(QID_NAMESPACE, name, qid, QID_TTL)

    def get_connections(self, qid: str) -> Optional[list]:
        return self.get(CONNECTION_NAMESPACE, qid)

    def set_connections(self, qid: str, connections: list) -> None:
        self.set(CONNECTION_NAMESPACE, qid, connections, CONNECTION_TTL)
