"""
Knowledge graph generation by layered breadth-first crawling of Wikidata.

Starting from seed entities (names and/or QIDs), each depth level expands
the current frontier:
- already-processed QIDs are dropped (processed set is global to the crawl)
- oversized layers are randomly sampled down to the per-depth limit
- the layer is fetched in sequential batches with a fixed delay in between
- new targets become nodes, unseen (source, target, label) triples become edges

Individual resolution and batch failures are absorbed by the fetcher; only
"no usable seed entity" aborts a crawl.
"""

import asyncio
import logging
import random
from dataclasses import asdict, dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Set

from src.common.errors import ResolutionError, ValidationError
from src.crawler.connection_fetcher import Connection, ConnectionFetcher
from src.crawler.sanitization import (
    MAX_ENTITIES,
    sanitize_qid,
    validate_depth,
    validate_entity_list,
)
from .edge_categories import categorize_edge

logger = logging.getLogger(__name__)

PLACEHOLDER_IMG = (
    "https://upload.wikimedia.org/wikipedia/commons/7/7c/Profile_avatar_placeholder_large.png"
)

BATCH_RATE_LIMIT = 0.5  # seconds between batches within a layer
SEED_NODE_SIZE = 40
DEFAULT_DEPTH_LEVEL = 3


@dataclass(frozen=True)
class DepthConfig:
    max_nodes_per_layer: int
    batch_size: int
    result_limit: int


# Limits shrink with distance from the seeds to keep growth bounded.
DEPTH_CONFIG: Dict[int, DepthConfig] = {
    1: DepthConfig(max_nodes_per_layer=50, batch_size=50, result_limit=3000),
    2: DepthConfig(max_nodes_per_layer=40, batch_size=45, result_limit=2800),
    3: DepthConfig(max_nodes_per_layer=30, batch_size=40, result_limit=2500),
    4: DepthConfig(max_nodes_per_layer=25, batch_size=35, result_limit=2200),
    5: DepthConfig(max_nodes_per_layer=20, batch_size=30, result_limit=2000),
    6: DepthConfig(max_nodes_per_layer=15, batch_size=25, result_limit=1800),
    7: DepthConfig(max_nodes_per_layer=12, batch_size=20, result_limit=1500),
    8: DepthConfig(max_nodes_per_layer=10, batch_size=15, result_limit=1200),
    9: DepthConfig(max_nodes_per_layer=8, batch_size=12, result_limit=1000),
    10: DepthConfig(max_nodes_per_layer=5, batch_size=10, result_limit=800),
}

NODE_SIZES = {"person": 30, "country": 22, "city": 18}
DEFAULT_NODE_SIZE = 15


def get_depth_config(depth: int) -> DepthConfig:
    """Limits for a depth level; unknown levels use level 3."""
    return DEPTH_CONFIG.get(depth, DEPTH_CONFIG[DEFAULT_DEPTH_LEVEL])


@dataclass
class GraphNode:
    id: str
    label: str
    group: str
    shape: str
    image: Optional[str]
    size: int
    title: str
    is_seed: bool = False


@dataclass
class GraphEdge:
    id: str
    source: str
    target: str
    label: str
    category: str
    arrows: str = "to"


@dataclass
class GraphResult:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict]]:
        return {
            "nodes": [asdict(node) for node in self.nodes],
            "edges": [asdict(edge) for edge in self.edges],
        }


def make_edge_id(source: str, target: str, label: str) -> str:
    return f"{source}-{target}-{label}"


def node_from_connection(connection: Connection) -> GraphNode:
    group = connection.group
    return GraphNode(
        id=connection.target,
        label=connection.target_label,
        group=group,
        shape="circularImage" if group == "person" else "dot",
        image=connection.image or PLACEHOLDER_IMG,
        size=NODE_SIZES.get(group, DEFAULT_NODE_SIZE),
        title=f"Type: {connection.type_label}",
    )


def _seed_node(qid: str, label: str, title: str) -> GraphNode:
    return GraphNode(
        id=qid,
        label=label,
        group="concept",
        shape="dot",
        image=PLACEHOLDER_IMG,
        size=SEED_NODE_SIZE,
        title=title,
        is_seed=True,
    )


ProgressCallback = Callable[[str], None]


class GraphGenerator:
    """Builds a graph around seed entities, one depth layer at a time."""

    def __init__(
        self,
        fetcher: ConnectionFetcher,
        batch_delay: float = BATCH_RATE_LIMIT,
        max_entities: int = MAX_ENTITIES,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize graph generator.

        Args:
            fetcher: Connection fetcher (shares the persistent cache)
            batch_delay: Seconds to wait between consecutive batches of a layer
            max_entities: Max seed names (and, separately, QIDs) per request
            rng: Random source for layer sampling (unseeded if omitted)
            sleep: Awaitable sleep used for the inter-batch delay
        """
        self.fetcher = fetcher
        self.batch_delay = batch_delay
        self.max_entities = max_entities
        self.rng = rng or random.Random()
        self.sleep = sleep

    def _validate_request(self, names: Optional[Sequence[str]], qids: Optional[Sequence[str]], depth):
        names = validate_entity_list(names, self.max_entities) if names is not None else []
        raw_qids = validate_entity_list(qids, self.max_entities) if qids is not None else []
        depth = validate_depth(depth)

        if not names and not raw_qids:
            raise ValidationError("Must provide either names or qids")

        return names, [sanitize_qid(q) for q in raw_qids], depth

    def _sample_layer(self, candidates: List[str], limit: int) -> List[str]:
        if len(candidates) <= limit:
            return candidates
        return self.rng.sample(candidates, limit)

    async def generate(
        self,
        names: Optional[Sequence[str]] = None,
        qids: Optional[Sequence[str]] = None,
        depth: int = 1,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GraphResult:
        """
        Crawl Wikidata around the given seeds.

        Args:
            names: English labels to resolve into seed QIDs
            qids: Seed QIDs (case-insensitive, e.g. "q42")
            depth: Number of expansion layers (1..10)
            on_progress: Optional callback receiving human-readable progress messages

        Returns:
            GraphResult with nodes (seeds first) and deduplicated edges

        Raises:
            ValidationError: if the request is malformed
            ResolutionError: if no seed entity could be resolved
        """
        names, qids, depth = self._validate_request(names, qids, depth)

        def report(message: str) -> None:
            logger.info(message)
            if on_progress is not None:
                on_progress(message)

        nodes: Dict[str, GraphNode] = {}
        edges: List[GraphEdge] = []
        edge_ids: Set[str] = set()
        processed: Set[str] = set()
        current_layer: List[str] = []

        for qid in qids:
            if qid in nodes:
                continue
            nodes[qid] = _seed_node(qid, qid, "Loading...")
            current_layer.append(qid)

        for name in names:
            report(f'Resolving "{name}"...')
            qid = await self.fetcher.resolve_id(name)
            if qid is None:
                logger.warning("Could not resolve entity name to QID: %s", name)
                continue
            if qid in nodes:
                nodes[qid].label = name
            else:
                nodes[qid] = _seed_node(qid, name, "Type: Initial Search Entity")
                current_layer.append(qid)

        if not current_layer:
            raise ResolutionError("Could not resolve any entities")

        for level in range(1, depth + 1):
            if not current_layer:
                break

            config = get_depth_config(level)
            to_process = [qid for qid in current_layer if qid not in processed]
            to_process = self._sample_layer(to_process, config.max_nodes_per_layer)
            if not to_process:
                break

            report(f"Processing depth {level}/{depth} — {len(to_process)} nodes")

            connections: List[Connection] = []
            batch_size = config.batch_size
            for start in range(0, len(to_process), batch_size):
                batch = to_process[start:start + batch_size]
                connections.extend(
                    await self.fetcher.fetch_batch(batch, result_limit=config.result_limit)
                )
                if start + batch_size < len(to_process):
                    await self.sleep(self.batch_delay)

            next_layer: List[str] = []
            for connection in connections:
                if connection.target not in nodes:
                    nodes[connection.target] = node_from_connection(connection)
                    next_layer.append(connection.target)

                edge_id = make_edge_id(connection.source, connection.target, connection.label)
                if edge_id not in edge_ids:
                    edge_ids.add(edge_id)
                    edges.append(
                        GraphEdge(
                            id=edge_id,
                            source=connection.source,
                            target=connection.target,
                            label=connection.label,
                            category=categorize_edge(connection.label),
                        )
                    )

            processed.update(to_process)
            logger.debug(
                "Depth %d: %d connections, %d new nodes", level, len(connections), len(next_layer)
            )
            current_layer = next_layer

        report(f"Done — {len(nodes)} nodes, {len(edges)} edges")
        return GraphResult(nodes=list(nodes.values()), edges=edges)
