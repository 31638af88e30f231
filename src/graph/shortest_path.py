"""
Shortest paths between graph nodes, used to highlight how seeds connect.

Edges are treated as undirected and unweighted; parallel edges between the
same pair are kept so the path can report a concrete edge id per hop.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import networkx as nx


@dataclass
class PathResult:
    node_ids: List[str]
    edge_ids: List[str] = field(default_factory=list)


def _edge_endpoints(edge: Any) -> Tuple[str, str, str]:
    if isinstance(edge, dict):
        return edge["id"], edge["source"], edge["target"]
    return edge.id, edge.source, edge.target


def build_undirected_graph(edges: Iterable[Any]) -> nx.MultiGraph:
    """Adjacency structure where every edge contributes both directions."""
    graph = nx.MultiGraph()
    for edge in edges:
        edge_id, source, target = _edge_endpoints(edge)
        graph.add_edge(source, target, key=edge_id)
    return graph


def _bfs_paths(graph: nx.MultiGraph, start_id: str) -> Dict[str, List[str]]:
    """Breadth-first paths from `start_id`; each node keeps the path that discovered it first."""
    if start_id not in graph:
        return {}
    return nx.single_source_shortest_path(graph, start_id)


def _to_path_result(graph: nx.MultiGraph, node_ids: List[str]) -> PathResult:
    # First edge (insertion order) between each consecutive pair
    edge_ids = [next(iter(graph[u][v])) for u, v in zip(node_ids, node_ids[1:])]
    return PathResult(node_ids=list(node_ids), edge_ids=edge_ids)


def find_shortest_path(edges: Iterable[Any], start_id: str, end_id: str) -> Optional[PathResult]:
    """
    Find a shortest path between two nodes.

    Ties between equally short paths go to the one breadth-first search from
    `start_id` discovers first, following edges in list order.

    Args:
        edges: Graph edges (GraphEdge objects or dicts with id/source/target)
        start_id: Start node id
        end_id: End node id

    Returns:
        PathResult with node and edge ids, or None if either node is absent
        from the edge list or the nodes are disconnected
    """
    if start_id == end_id:
        return PathResult(node_ids=[start_id])
    graph = build_undirected_graph(edges)
    node_ids = _bfs_paths(graph, start_id).get(end_id)
    if node_ids is None:
        return None
    return _to_path_result(graph, node_ids)


def find_all_pair_paths(edges: Iterable[Any], node_ids: List[str]) -> List[PathResult]:
    """Shortest paths for every unordered pair of `node_ids`; disconnected pairs are skipped."""
    graph = build_undirected_graph(edges)
    paths: List[PathResult] = []
    for i, start_id in enumerate(node_ids):
        reachable = _bfs_paths(graph, start_id)
        for end_id in node_ids[i + 1:]:
            if end_id == start_id:
                paths.append(PathResult(node_ids=[start_id]))
                continue
            path_nodes = reachable.get(end_id)
            if path_nodes is not None:
                paths.append(_to_path_result(graph, path_nodes))
    return paths
