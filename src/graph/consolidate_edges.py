"""
Edge consolidation utilities.

Merges parallel edges with the same (source, target) into one display edge
with a combined label. Direction matters: A->B and B->A stay separate.
"""

from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterable, List, Mapping


def _as_dict(edge: Any) -> Dict[str, Any]:
    if is_dataclass(edge):
        return asdict(edge)
    return dict(edge)


def consolidate_edges(edges: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Consolidate edges between the same source and target nodes.

    Each result carries the original fields of the first edge in its group plus
    `labels` (in insertion order) and `count`; `label` becomes the labels
    joined with ", ".
    """
    groups: Dict[tuple, Dict[str, Any]] = {}

    for edge in edges:
        data = _as_dict(edge)
        key = (data["source"], data["target"])
        existing = groups.get(key)
        if existing is None:
            data["labels"] = [data["label"]]
            data["count"] = 1
            groups[key] = data
        else:
            existing["labels"].append(data["label"])
            existing["count"] += 1
            existing["label"] = ", ".join(existing["labels"])

    return list(groups.values())


def should_hide_edge(edge: Any, visibility: Mapping[str, bool]) -> bool:
    """Hide an edge if either endpoint is explicitly marked not visible."""
    data = edge if isinstance(edge, Mapping) else _as_dict(edge)
    return visibility.get(data["source"]) is False or visibility.get(data["target"]) is False
