"""Crawl duration estimate from the static depth configuration (no network access)."""

import math
from typing import Dict, Optional, Sequence

from .graph_generator import BATCH_RATE_LIMIT, get_depth_config

AVG_QUERY_TIME = 0.8
AVG_PROCESSING_TIME = 0.6
ESTIMATE_NOTE = "Actual time may vary based on network speed and Wikidata load"


def format_duration(total_seconds: float) -> str:
    if total_seconds < 60:
        return f"{math.floor(total_seconds)}s"
    if total_seconds < 3600:
        minutes = math.floor(total_seconds / 60)
        seconds = math.floor(total_seconds % 60)
        return f"{minutes}m {seconds}s"
    hours = math.floor(total_seconds / 3600)
    minutes = math.floor((total_seconds % 3600) / 60)
    return f"{hours}h {minutes}m"


def estimate_time(
    names: Optional[Sequence[str]] = None,
    qids: Optional[Sequence[str]] = None,
    depth: int = 1,
) -> Dict:
    num_entities = len(names or []) + len(qids or [])

    per_depth = []
    current_nodes = num_entities
    for level in range(1, depth + 1):
        config = get_depth_config(level)
        max_nodes = config.max_nodes_per_layer

        # First layer fans out widely; later layers are capped harder.
        if level == 1:
            estimated_new_nodes = min(current_nodes * 20, max_nodes * current_nodes)
        else:
            estimated_new_nodes = min(current_nodes * 10, max_nodes * 5)

        num_batches = max(1, current_nodes // config.batch_size)
        query_time = num_batches * (AVG_QUERY_TIME + BATCH_RATE_LIMIT)
        per_depth.append(
            {
                "depth": level,
                "nodes": current_nodes,
                "estimated_new_nodes": estimated_new_nodes,
                "time_seconds": query_time + AVG_PROCESSING_TIME,
            }
        )
        current_nodes = min(estimated_new_nodes, max_nodes)

    total_seconds = sum(item["time_seconds"] for item in per_depth)
    return {
        "total_seconds": total_seconds,
        "formatted_time": format_duration(total_seconds),
        "per_depth": per_depth,
        "note": ESTIMATE_NOTE,
    }
