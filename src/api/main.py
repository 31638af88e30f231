"""
FastAPI main application for the WikiGraph engine.

Exposes endpoints for:
- Graph generation around seed entities (layered Wikidata crawl).
- Shortest paths between seed entities.
- Edge consolidation and visibility filtering.
- Crawl time estimates and entity autocomplete.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from time import perf_counter
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.common.config import load_config
from src.common.errors import ResolutionError, ValidationError
from src.common.logging_utils import setup_logging
from src.graph.graph_service import WikiGraphService

setup_logging()
logger = logging.getLogger(__name__)

_graph_service: Optional[WikiGraphService] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the process-wide graph service and run the response cache sweeper."""
    global _graph_service
    try:
        _graph_service = WikiGraphService.from_config(load_config())
        _graph_service.response_cache.start_sweeper()
        logger.info("API started with graph service ready")
    except Exception as exc:  # noqa: BLE001
        logger.exception("Failed to initialize graph service: %s", exc)
        _graph_service = None

    yield

    try:
        if _graph_service:
            await _graph_service.response_cache.stop_sweeper()
            _graph_service.close()
    except Exception:  # noqa: BLE001
        logger.warning("Error during graph service shutdown", exc_info=True)
    finally:
        _graph_service = None


app = FastAPI(
    title="WikiGraph Engine API",
    description="API for building Wikidata knowledge graphs around seed entities",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class GenerateMapRequest(BaseModel):
    """Request model for graph generation."""

    names: Optional[List[str]] = None
    qids: Optional[List[str]] = None
    depth: float = 1
    skip_cache: bool = False


class EdgeModel(BaseModel):
    id: str
    source: str
    target: str
    label: str
    category: str = "other"
    arrows: str = "to"


class GraphResponse(BaseModel):
    nodes: List[Dict]
    edges: List[Dict]


class PathsRequest(BaseModel):
    edges: List[EdgeModel]
    seed_ids: List[str]


class PathModel(BaseModel):
    node_ids: List[str]
    edge_ids: List[str]


class PathsResponse(BaseModel):
    paths: List[PathModel]


class ConsolidateRequest(BaseModel):
    edges: List[EdgeModel]
    visibility: Optional[Dict[str, bool]] = None


class EstimateRequest(BaseModel):
    names: Optional[List[str]] = None
    qids: Optional[List[str]] = None
    depth: float = 1


class SearchResult(BaseModel):
    id: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests and responses with latency."""
    start = perf_counter()
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        logger.exception(
            "Unhandled error during request %s %s after %.2fms",
            request.method,
            request.url.path,
            (perf_counter() - start) * 1000,
        )
        raise
    logger.info(
        "HTTP %s %s -> %s in %.2fms",
        request.method,
        request.url.path,
        response.status_code,
        (perf_counter() - start) * 1000,
    )
    return response


@app.get("/")
async def root():
    return {"message": "WikiGraph Engine API", "version": "0.1.0"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    status = "degraded" if _graph_service is None else "healthy"
    return {"status": status}


def _ensure_service_available() -> WikiGraphService:
    if _graph_service is None:
        raise HTTPException(
            status_code=503,
            detail="Graph service is not available.",
        )
    return _graph_service


@app.post("/api/graph/generate", response_model=GraphResponse)
@limiter.limit("10/minute")
async def generate_graph(request: Request, body: GenerateMapRequest):
    """Crawl Wikidata around the given seeds and return nodes and edges."""
    service = _ensure_service_available()
    try:
        result = await service.generate_map(
            {"names": body.names, "qids": body.qids, "depth": body.depth},
            skip_cache=body.skip_cache,
        )
        return result.to_dict()
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ResolutionError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except Exception:  # noqa: BLE001
        logger.exception("Error generating graph for %s", body)
        raise HTTPException(status_code=500, detail="Internal server error")


@app.post("/api/graph/paths", response_model=PathsResponse)
@limiter.limit("100/minute")
async def graph_paths(request: Request, body: PathsRequest):
    """Shortest paths between every pair of seed ids."""
    service = _ensure_service_available()
    edges = [edge.model_dump() for edge in body.edges]
    paths = service.find_all_pair_paths(edges, body.seed_ids)
    return {"paths": [asdict(path) for path in paths]}


@app.post("/api/graph/consolidate")
@limiter.limit("100/minute")
async def graph_consolidate(request: Request, body: ConsolidateRequest):
    """Merge parallel edges; marks edges hidden when an endpoint is hidden."""
    service = _ensure_service_available()
    consolidated = service.consolidate_edges(edge.model_dump() for edge in body.edges)
    visibility = body.visibility or {}
    for edge in consolidated:
        edge["hidden"] = service.should_hide_edge(edge, visibility)
    return {"edges": consolidated}


@app.post("/api/graph/estimate")
@limiter.limit("100/minute")
async def graph_estimate(request: Request, body: EstimateRequest):
    """Estimate crawl duration without touching the network."""
    service = _ensure_service_available()
    try:
        return service.estimate_time(names=body.names, qids=body.qids, depth=body.depth)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.get("/api/search", response_model=SearchResponse)
@limiter.limit("120/minute")
async def search_entities(request: Request, q: str = "", session: Optional[str] = None):
    """Entity autocomplete; a newer search from the same session supersedes an older one."""
    service = _ensure_service_available()
    results = await service.search_entities(q, session=session or get_remote_address(request))
    return {"query": q, "results": results}


@app.post("/api/cache/clear")
@limiter.limit("10/minute")
async def clear_cache(request: Request):
    service = _ensure_service_available()
    cleared = service.clear_caches()
    logger.info("Cleared caches: %s", cleared)
    return {"cleared": cleared}
