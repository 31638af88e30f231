"""
QID resolution and batched connection fetching against Wikidata.

Both lookups go through the persistent TTL cache first. Query failures are
logged and degrade to "no data" so a crawl keeps going with partial results.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from src.cache.ttl_cache import PersistentCache
from src.common.errors import TransientFetchError, ValidationError
from .sanitization import is_valid_qid, sanitize_name
from .sparql_client import TripleQueryExecutor

logger = logging.getLogger(__name__)

SPARQL_RESULT_LIMIT = 2000
ENTITY_PREFIX = "http://www.wikidata.org/entity/"

# Wikidata classes (P31 targets) grouped into node groups
SCHOOL_TYPES = {"Q3918", "Q737498", "Q3914", "Q875538", "Q38723"}
COUNTRY_TYPES = {"Q6256", "Q3624078", "Q1763527"}
CITY_TYPES = {"Q515", "Q1549591", "Q3455524", "Q532", "Q5119"}
LOCATION_TYPES = {"Q2221906", "Q82794", "Q15642541"}
ORGANIZATION_TYPES = {"Q43229", "Q163740", "Q484652", "Q2659904"}
COMPANY_TYPES = {"Q4830453", "Q891723", "Q6881511"}
HUMAN_TYPE = "Q5"

_TYPE_GROUPS = (
    (SCHOOL_TYPES, "school"),
    (COUNTRY_TYPES, "country"),
    (CITY_TYPES, "city"),
    (LOCATION_TYPES, "location"),
    (ORGANIZATION_TYPES, "organization"),
    (COMPANY_TYPES, "company"),
)


@dataclass
class Connection:
    """One outbound statement `source --label--> target` as fetched from Wikidata."""

    source: str
    target: str
    target_label: str
    label: str
    image: Optional[str]
    group: str
    type_label: str


def determine_group(type_qid: str, is_human: bool = False) -> str:
    """Map an entity's P31 class to a node group."""
    if is_human or type_qid == HUMAN_TYPE:
        return "person"
    for types, group in _TYPE_GROUPS:
        if type_qid in types:
            return group
    return "concept"


def _entity_id(uri: str) -> str:
    return uri.rsplit("/", 1)[-1]


def build_resolve_query(sanitized_name: str) -> str:
    return f"""
    SELECT ?item WHERE {{
      ?item rdfs:label "{sanitized_name}"@en.
      SERVICE wikibase:label {{ bd:serviceParam wikibase:language "en". }}
    }} LIMIT 1
    """


def build_connections_query(qids: List[str], limit: int = SPARQL_RESULT_LIMIT) -> str:
    values = " ".join(f"wd:{qid}" for qid in qids)
    return f"""
    SELECT ?source ?propLabel ?target ?targetLabel ?isHuman (SAMPLE(?img) AS ?image) ?typeQID (SAMPLE(?typeLbl) AS ?typeLabel) WHERE {{
      VALUES ?source {{ {values} }}
      ?source ?p ?target.

      FILTER(ISIRI(?target) && STRSTARTS(STR(?target), "{ENTITY_PREFIX}Q"))
      FILTER(!ISBLANK(?target))

      BIND(EXISTS{{?target wdt:P31 wd:Q5}} AS ?isHuman)

      OPTIONAL {{ ?target wdt:P18 ?img. }}

      OPTIONAL {{
        ?target wdt:P31 ?type.
        ?type rdfs:label ?typeLbl.
        FILTER(LANG(?typeLbl) = "en")
      }}
      BIND(STRAFTER(STR(?type), "{ENTITY_PREFIX}") AS ?typeQID)

      SERVICE wikibase:label {{ bd:serviceParam wikibase:language "en". }}
      ?prop wikibase:directClaim ?p.
    }}
    GROUP BY ?source ?propLabel ?target ?targetLabel ?isHuman ?typeQID
    LIMIT {int(limit)}
    """


def row_to_connection(row: Dict[str, str]) -> Optional[Connection]:
    """Convert one SPARQL result row; returns None for non-item targets."""
    target = _entity_id(row.get("target", ""))
    if not is_valid_qid(target):
        return None

    type_qid = row.get("typeQID") or ""
    is_human = row.get("isHuman") == "true"
    return Connection(
        source=_entity_id(row.get("source", "")),
        target=target,
        target_label=row.get("targetLabel") or target,
        label=row.get("propLabel") or "link",
        image=row.get("image") or None,
        group=determine_group(type_qid, is_human),
        type_label=row.get("typeLabel") or "Concept",
    )


_MISSING = object()


class ConnectionFetcher:
    """Resolves names to QIDs and fetches outbound connections in batches."""

    def __init__(
        self,
        execute_query: TripleQueryExecutor,
        cache: PersistentCache,
        result_limit: int = SPARQL_RESULT_LIMIT,
    ):
        """
        Args:
            execute_query: Async callable submitting a SPARQL query, returning `{"rows": [...]}`
            cache: Shared persistent cache
            result_limit: Default server-side row cap for batch queries
        """
        self.execute_query = execute_query
        self.cache = cache
        self.result_limit = result_limit

    async def resolve_id(self, name: str) -> Optional[str]:
        """
        Resolve an English label to a QID.

        A cached "no result" is returned as None without querying again.
        """
        cached = self.cache.get_qid(name, default=_MISSING)
        if cached is not _MISSING:
            logger.debug("QID cache hit for '%s': %s", name, cached)
            return cached

        try:
            sanitized = sanitize_name(name)
        except ValidationError as exc:
            logger.warning("Cannot resolve entity name '%s': %s", name, exc)
            return None

        try:
            result = await self.execute_query(build_resolve_query(sanitized))
        except TransientFetchError as exc:
            logger.warning("Error finding QID for '%s': %s", name, exc)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.error("Unexpected error finding QID for '%s': %s", name, exc, exc_info=True)
            return None

        rows = result.get("rows", [])
        if rows and rows[0].get("item"):
            qid = _entity_id(rows[0]["item"])
            self.cache.set_qid(name, qid)
            return qid

        self.cache.set_qid(name, None)
        logger.debug("No Wikidata entity found for '%s'", name)
        return None

    async def fetch_batch(self, qids: List[str], result_limit: Optional[int] = None) -> List[Connection]:
        """
        Fetch outbound connections for a batch of QIDs with one SPARQL query.

        Cached QIDs are served from cache; on a failed query only the cached
        connections are returned.
        """
        if not qids:
            return []

        cached_connections: List[Connection] = []
        uncached: List[str] = []
        for qid in qids:
            cached = self.cache.get_connections(qid)
            if cached is not None:
                cached_connections.extend(Connection(**item) for item in cached)
            else:
                uncached.append(qid)

        if not uncached:
            logger.debug("All %d QIDs served from connection cache", len(qids))
            return cached_connections

        limit = result_limit if result_limit is not None else self.result_limit
        try:
            result = await self.execute_query(build_connections_query(uncached, limit))
        except TransientFetchError as exc:
            logger.warning("SPARQL batch query failed for %d QIDs: %s", len(uncached), exc)
            return cached_connections
        except Exception as exc:  # noqa: BLE001
            logger.error("Unexpected SPARQL batch error for %d QIDs: %s", len(uncached), exc, exc_info=True)
            return cached_connections

        by_source: Dict[str, List[Connection]] = {qid: [] for qid in uncached}
        fetched: List[Connection] = []
        for row in result.get("rows", []):
            connection = row_to_connection(row)
            if connection is None:
                continue
            fetched.append(connection)
            if connection.source in by_source:
                by_source[connection.source].append(connection)

        for qid, connections in by_source.items():
            self.cache.set_connections(qid, [asdict(c) for c in connections])

        logger.debug(
            "Fetched %d connections for %d QIDs (%d from cache)",
            len(fetched),
            len(uncached),
            len(cached_connections),
        )
        return cached_connections + fetched
