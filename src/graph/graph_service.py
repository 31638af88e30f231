"""
Graph service tying the crawler, caches and graph algorithms together.

One service instance is built per process; it owns the shared persistent
cache and the response cache, so repeated requests reuse earlier lookups.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from src.cache.response_cache import (
    RESPONSE_TTL,
    SWEEP_INTERVAL,
    ResponseCache,
    make_request_key,
)
from src.cache.store import MemoryStore, SqliteStore
from src.cache.ttl_cache import PersistentCache
from src.common.config import get_cache_config, get_crawler_config, get_sparql_config, load_config
from src.crawler.connection_fetcher import SPARQL_RESULT_LIMIT, ConnectionFetcher
from src.crawler.entity_search import DEFAULT_SESSION, EntitySearch
from src.crawler.sanitization import MAX_ENTITIES, validate_depth
from src.crawler.sparql_client import SparqlClient, TripleQueryExecutor
from .consolidate_edges import consolidate_edges, should_hide_edge
from .graph_generator import BATCH_RATE_LIMIT, GraphGenerator, GraphResult, ProgressCallback
from .shortest_path import PathResult, find_all_pair_paths
from .time_estimator import estimate_time

logger = logging.getLogger(__name__)


class WikiGraphService:
    """Entry point for graph generation, path finding and edge consolidation."""

    def __init__(
        self,
        client: Optional[SparqlClient] = None,
        cache: Optional[PersistentCache] = None,
        response_cache: Optional[ResponseCache] = None,
        execute_query: Optional[TripleQueryExecutor] = None,
        result_limit: int = SPARQL_RESULT_LIMIT,
        batch_delay: float = BATCH_RATE_LIMIT,
        max_entities: int = MAX_ENTITIES,
        rng: Optional[random.Random] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize graph service.

        Args:
            client: SPARQL/search transport (default client if omitted)
            cache: Persistent TTL cache (in-memory store if omitted)
            response_cache: Whole-response cache
            execute_query: Override for the SPARQL executor (defaults to client.execute_query)
            result_limit: Default server-side row cap for batch queries
            batch_delay: Seconds between batches within a layer
            max_entities: Max seed names / QIDs per request
            rng: Random source for layer sampling
            sleep: Awaitable sleep used between batches (asyncio.sleep if omitted)
        """
        self.client = client or SparqlClient()
        self.cache = cache or PersistentCache()
        self.response_cache = response_cache or ResponseCache()
        self.fetcher = ConnectionFetcher(
            execute_query or self.client.execute_query,
            self.cache,
            result_limit=result_limit,
        )
        self.generator = GraphGenerator(
            self.fetcher,
            batch_delay=batch_delay,
            max_entities=max_entities,
            rng=rng,
            sleep=sleep or asyncio.sleep,
        )
        self.entity_search = EntitySearch(self.client, self.response_cache)

    @classmethod
    def from_config(cls, config: Optional[Dict] = None) -> "WikiGraphService":
        """Build the service (and its stores) from config.yaml sections."""
        if config is None:
            config = load_config()
        sparql_cfg = get_sparql_config(config)
        crawler_cfg = get_crawler_config(config)
        cache_cfg = get_cache_config(config)

        max_entries = int(cache_cfg.get("max_entries", 5000))
        if cache_cfg.get("backend", "sqlite") == "memory":
            store = MemoryStore(max_entries=max_entries)
        else:
            store = SqliteStore(
                path=cache_cfg.get("path", "data/cache/wikigraph_cache.db"),
                max_entries=max_entries,
            )

        client = SparqlClient.from_config(sparql_cfg)
        cache = PersistentCache(store)
        response_cache = ResponseCache(
            ttl=float(cache_cfg.get("response_ttl", RESPONSE_TTL)),
            sweep_interval=float(cache_cfg.get("sweep_interval", SWEEP_INTERVAL)),
        )
        service = cls(
            client=client,
            cache=cache,
            response_cache=response_cache,
            result_limit=int(sparql_cfg.get("result_limit", SPARQL_RESULT_LIMIT)),
            batch_delay=float(crawler_cfg.get("batch_delay", BATCH_RATE_LIMIT)),
            max_entities=int(crawler_cfg.get("max_entities", MAX_ENTITIES)),
        )
        logger.info(
            "Graph service initialized (cache backend=%s, batch_delay=%.2fs)",
            cache_cfg.get("backend", "sqlite"),
            service.generator.batch_delay,
        )
        return service

    async def generate_map(
        self,
        request: Mapping[str, Any],
        skip_cache: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GraphResult:
        """
        Generate a graph for `{"names", "qids", "depth"}`, reusing a recent identical result.

        Raises:
            ValidationError: if the request is malformed
            ResolutionError: if no seed entity could be resolved
        """
        key = make_request_key("generate", dict(request))
        return await self.response_cache.cached_fetch(
            key,
            lambda: self.generator.generate(
                names=request.get("names"),
                qids=request.get("qids"),
                depth=request.get("depth", 1),
                on_progress=on_progress,
            ),
            skip_cache=skip_cache,
        )

    def find_all_pair_paths(self, edges: Iterable[Any], seed_ids: List[str]) -> List[PathResult]:
        return find_all_pair_paths(list(edges), seed_ids)

    def consolidate_edges(self, edges: Iterable[Any]) -> List[Dict[str, Any]]:
        return consolidate_edges(edges)

    def should_hide_edge(self, edge: Any, visibility: Mapping[str, bool]) -> bool:
        return should_hide_edge(edge, visibility)

    def estimate_time(
        self,
        names: Optional[Sequence[str]] = None,
        qids: Optional[Sequence[str]] = None,
        depth: int = 1,
    ) -> Dict:
        return estimate_time(names=names, qids=qids, depth=validate_depth(depth))

    async def search_entities(self, query: str, session: str = DEFAULT_SESSION) -> List[Dict[str, Optional[str]]]:
        return await self.entity_search.search(query, session=session)

    def clear_caches(self) -> Dict[str, int]:
        """Drop every cached lookup and response."""
        return {
            "persistent": self.cache.clear_all(),
            "responses": self.response_cache.clear_all(),
        }

    def close(self) -> None:
        self.client.close()
        store = self.cache.store
        if isinstance(store, SqliteStore):
            store.close()
