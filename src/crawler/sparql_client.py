"""
HTTP transport for the Wikidata SPARQL endpoint and search API.

The crawler only depends on an async `query -> {"rows": [...]}` callable
(TripleQueryExecutor); SparqlClient.execute_query is the default one.

Note: Wikidata requires a descriptive User-Agent header and enforces
fair-use limits. Requests without one may be rejected with 403 Forbidden.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional

import requests

from src.common.errors import TransientFetchError

logger = logging.getLogger(__name__)

SPARQL_ENDPOINT = "https://query.wikidata.org/sparql"
SEARCH_API_URL = "https://www.wikidata.org/w/api.php"
USER_AGENT = "WikiGraph/2.0 (https://github.com/wikigraph/wikigraph-engine) Python/requests"
REQUEST_TIMEOUT = 60

TripleQueryExecutor = Callable[[str], Awaitable[Dict[str, List[Dict[str, str]]]]]


def flatten_bindings(payload: Dict[str, Any]) -> List[Dict[str, str]]:
    """Turn SPARQL JSON results into plain rows of `{variable: value}`."""
    bindings = payload.get("results", {}).get("bindings", [])
    rows = []
    for binding in bindings:
        rows.append({var: cell.get("value", "") for var, cell in binding.items()})
    return rows


class SparqlClient:
    """Blocking `requests` calls run in the event loop's executor."""

    def __init__(
        self,
        endpoint: str = SPARQL_ENDPOINT,
        search_url: str = SEARCH_API_URL,
        user_agent: str = USER_AGENT,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint
        self.search_url = search_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    @classmethod
    def from_config(cls, sparql_cfg: Dict[str, Any]) -> "SparqlClient":
        return cls(
            endpoint=sparql_cfg.get("endpoint", SPARQL_ENDPOINT),
            search_url=sparql_cfg.get("search_url", SEARCH_API_URL),
            user_agent=sparql_cfg.get("user_agent", USER_AGENT),
            timeout=float(sparql_cfg.get("timeout", REQUEST_TIMEOUT)),
        )

    def _post_query(self, query: str) -> Dict[str, Any]:
        try:
            response = self.session.post(
                self.endpoint,
                data={"query": query},
                headers={"Accept": "application/sparql-results+json"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise TransientFetchError(f"SPARQL request failed: {exc}") from exc

        if not response.ok:
            body = response.text or ""
            if response.status_code == 429:
                logger.warning("SPARQL endpoint is rate limiting requests (429)")
            raise TransientFetchError(
                f"SPARQL query failed ({response.status_code}): {body[:200]}",
                status_code=response.status_code,
                body=body,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise TransientFetchError(
                "SPARQL endpoint returned invalid JSON",
                status_code=response.status_code,
                body=response.text or "",
            ) from exc

    async def execute_query(self, query: str) -> Dict[str, List[Dict[str, str]]]:
        """Run a SPARQL query and return `{"rows": [...]}`."""
        loop = asyncio.get_event_loop()
        payload = await loop.run_in_executor(None, partial(self._post_query, query))
        return {"rows": flatten_bindings(payload)}

    def _get_search(self, query: str, limit: int) -> Dict[str, Any]:
        params = {
            "action": "wbsearchentities",
            "search": query,
            "language": "en",
            "format": "json",
            "limit": limit,
        }
        try:
            response = self.session.get(self.search_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise TransientFetchError(f"Entity search failed ({status})", status_code=status) from exc
        except (requests.exceptions.RequestException, ValueError) as exc:
            raise TransientFetchError(f"Entity search failed: {exc}") from exc

    async def search_entities(self, query: str, limit: int = 10) -> List[Dict[str, Optional[str]]]:
        """
        Search Wikidata entities by label (autocomplete).

        Returns:
            List of `{"id", "label", "description"}` dicts
        """
        loop = asyncio.get_event_loop()
        data = await loop.run_in_executor(None, partial(self._get_search, query, limit))
        search = data.get("search") if isinstance(data, dict) else None
        if not isinstance(search, list):
            return []
        return [
            {
                "id": item.get("id"),
                "label": item.get("label"),
                "description": item.get("description"),
            }
            for item in search
        ]

    def close(self) -> None:
        self.session.close()
