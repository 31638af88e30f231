"""
Error taxonomy for the WikiGraph engine.

- ValidationError: bad input shape or range, raised before any network activity.
- ResolutionError: none of the seed entities could be resolved to a QID.
- TransientFetchError: a single query failed; absorbed by the crawler.
- CacheStoreError: a key-value store failed; the cache treats it as a miss.
- StorageFullError: a key-value store ran out of capacity.
"""

from typing import Optional


class WikiGraphError(Exception):
    """Base class for engine errors."""


class ValidationError(WikiGraphError, ValueError):
    """Raised when caller input is malformed or out of range."""


class ResolutionError(WikiGraphError):
    """Raised when no seed entity resolves to an identifier."""


class TransientFetchError(WikiGraphError):
    """A query against the linked-data source failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body[:200]


class CacheStoreError(WikiGraphError):
    """A key-value store operation failed (locked, corrupt or unreachable)."""


class StorageFullError(CacheStoreError):
    """A key-value store refused a write because it is at capacity."""
