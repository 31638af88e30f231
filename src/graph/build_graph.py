"""
Command-line graph crawl.

Runs one crawl around the given seeds and writes nodes, edges and the
shortest paths between seeds as JSON:
    python -m src.graph.build_graph --name "Douglas Adams" --depth 2 --output graph.json
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from typing import Dict, List, Optional

from src.common.config import load_config
from src.common.errors import ResolutionError, ValidationError
from src.common.logging_utils import setup_logging
from .graph_service import WikiGraphService

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crawl a Wikidata knowledge graph around seed entities.")
    parser.add_argument("--name", dest="names", action="append", default=[], help="Seed entity label (repeatable)")
    parser.add_argument("--id", dest="qids", action="append", default=[], help="Seed QID, e.g. Q42 (repeatable)")
    parser.add_argument("--depth", type=int, default=1, help="Expansion depth (1-10)")
    parser.add_argument("--output", default=None, help="Output JSON path (stdout if omitted)")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    return parser.parse_args(argv)


async def build(
    service: WikiGraphService,
    names: Optional[List[str]],
    qids: Optional[List[str]],
    depth: int,
) -> Dict:
    """Crawl and assemble the JSON document."""
    result = await service.generate_map(
        {"names": names, "qids": qids, "depth": depth},
        skip_cache=True,
    )
    seed_ids = [node.id for node in result.nodes if node.is_seed]
    paths = service.find_all_pair_paths(result.edges, seed_ids)
    document = result.to_dict()
    document["paths"] = [asdict(path) for path in paths]
    return document


def write_output(document: Dict, output: Optional[str]) -> None:
    if output is None:
        json.dump(document, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return
    directory = os.path.dirname(output)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
    logger.info(
        "Wrote %d nodes, %d edges to %s",
        len(document["nodes"]),
        len(document["edges"]),
        output,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main crawl entry point; returns a process exit code."""
    args = parse_args(argv)
    config = load_config(args.config)
    setup_logging(config)

    service = WikiGraphService.from_config(config)
    try:
        document = asyncio.run(build(service, args.names or None, args.qids or None, args.depth))
    except ValidationError as exc:
        logger.error("Invalid request: %s", exc)
        return 2
    except ResolutionError as exc:
        logger.error("Graph construction failed: %s", exc)
        return 1
    finally:
        service.close()

    write_output(document, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
