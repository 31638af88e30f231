"""
Interactive entity search (autocomplete) with stale-request handling.

Each caller (one search box, identified by a session key) has at most one
search in flight: a new search from the same session cancels the previous
one. A superseded call resolves to an empty result instead of raising, and
results that arrive after a newer search from that session started are
discarded. Searches from different sessions never affect each other.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from src.cache.response_cache import ResponseCache
from src.common.errors import TransientFetchError
from .sparql_client import SparqlClient

logger = logging.getLogger(__name__)

MIN_QUERY_CHARS = 2
SEARCH_LIMIT = 10
DEFAULT_SESSION = "default"


class EntitySearch:
    """Autocomplete over the Wikidata search API."""

    def __init__(
        self,
        client: SparqlClient,
        response_cache: ResponseCache,
        min_chars: int = MIN_QUERY_CHARS,
        limit: int = SEARCH_LIMIT,
    ):
        self.client = client
        self.response_cache = response_cache
        self.min_chars = min_chars
        self.limit = limit
        self._in_flight: Dict[str, asyncio.Future] = {}

    async def _lookup(self, query: str) -> List[Dict[str, Optional[str]]]:
        return await self.response_cache.cached_fetch(
            f"search-{query}",
            lambda: self.client.search_entities(query, limit=self.limit),
        )

    async def search(self, query: str, session: str = DEFAULT_SESSION) -> List[Dict[str, Optional[str]]]:
        """
        Search entities by label for one caller.

        Args:
            query: Partial label typed by the user
            session: Key of the caller whose previous search this one supersedes

        Returns:
            List of `{"id", "label", "description"}` dicts; empty when the query is
            too short, the search failed, or a newer search from the session started
        """
        previous = self._in_flight.pop(session, None)
        if previous is not None and not previous.done():
            previous.cancel()

        if not query or len(query) < self.min_chars:
            return []

        task = asyncio.ensure_future(self._lookup(query))
        self._in_flight[session] = task
        try:
            results = await task
        except asyncio.CancelledError:
            if self._in_flight.get(session) is not task:
                logger.debug("Search for '%s' superseded", query)
                return []
            self._in_flight.pop(session, None)
            raise
        except TransientFetchError as exc:
            logger.warning("Entity search failed for '%s': %s", query, exc)
            self._release(session, task)
            return []

        if self._in_flight.get(session) is not task:
            return []
        self._release(session, task)
        return results

    def _release(self, session: str, task: asyncio.Future) -> None:
        if self._in_flight.get(session) is task:
            del self._in_flight[session]
