"""
In-process response cache for whole generated graphs and search results.

Entries are keyed by the full serialized request, so distinct requests never
collide. A background sweep drops stale entries that are never re-requested.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

RESPONSE_TTL = 10 * 60  # 10 minutes
SWEEP_INTERVAL = 5 * 60  # 5 minutes

T = TypeVar("T")


@dataclass
class CachedResponse:
    data: Any
    timestamp: float


def make_request_key(prefix: str, request: Dict[str, Any]) -> str:
    """Build a cache key from a request mapping (e.g. `generate-{...}`)."""
    return f"{prefix}-{json.dumps(request, sort_keys=True, default=str)}"


class ResponseCache:
    """Short-lived whole-result cache with periodic sweeping."""

    def __init__(
        self,
        ttl: float = RESPONSE_TTL,
        sweep_interval: float = SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self.clock = clock
        self._entries: Dict[str, CachedResponse] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def _is_valid(self, cached: Optional[CachedResponse]) -> bool:
        if cached is None:
            return False
        return self.clock() - cached.timestamp < self.ttl

    async def cached_fetch(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        skip_cache: bool = False,
    ) -> T:
        """
        Return the cached value for `key`, or produce, store and return a fresh one.

        Args:
            key: Full request key
            producer: Coroutine factory computing the value on a miss
            skip_cache: Always call the producer (the fresh value is still stored)
        """
        if not skip_cache:
            cached = self._entries.get(key)
            if self._is_valid(cached):
                logger.debug("Response cache hit for %s", key)
                return cached.data

        data = await producer()
        self._entries[key] = CachedResponse(data=data, timestamp=self.clock())
        return data

    def clear_expired(self) -> int:
        """Remove entries older than the TTL."""
        now = self.clock()
        stale = [key for key, value in self._entries.items() if now - value.timestamp >= self.ttl]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("Swept %d expired responses", len(stale))
        return len(stale)

    def clear_all(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.clear_expired()

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop (idempotent)."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.ensure_future(self._sweep_forever())

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
