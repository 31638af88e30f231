"""
Pytest configuration and shared fixtures for WikiGraph engine tests.

This module provides:
- A fake Wikidata SPARQL executor (no network access in tests)
- A row factory mirroring the connections query's result variables
- In-memory persistent caches with a controllable clock
- A store that fails every operation
"""

import re
import sqlite3

import pytest

from src.cache.store import KeyValueStore, MemoryStore
from src.cache.ttl_cache import PersistentCache
from src.common.errors import TransientFetchError

ENTITY = "http://www.wikidata.org/entity/"
VALUES_RE = re.compile(r"VALUES \?source \{([^}]*)\}")
LABEL_RE = re.compile(r'rdfs:label "((?:[^"\\]|\\.)*)"@en')


def _make_row(source, target, prop_label, target_label=None, is_human=False, type_qid="", type_label="", image=None):
    row = {
        "source": ENTITY + source,
        "target": ENTITY + target,
        "propLabel": prop_label,
        "targetLabel": target_label or target,
        "isHuman": "true" if is_human else "false",
    }
    if type_qid:
        row["typeQID"] = type_qid
    if type_label:
        row["typeLabel"] = type_label
    if image:
        row["image"] = image
    return row


class FakeWikidata:
    """Async stand-in for SparqlClient.execute_query."""

    def __init__(self, connections=None, labels=None):
        self.connections = connections or {}
        self.labels = labels or {}
        self.queries = []
        self.batches = []
        self.fail = False

    async def __call__(self, query):
        self.queries.append(query)
        if self.fail:
            raise TransientFetchError("SPARQL query failed (503): busy", status_code=503, body="busy")

        values = VALUES_RE.search(query)
        if values:
            qids = re.findall(r"wd:(Q\d+)", values.group(1))
            self.batches.append(qids)
            return {"rows": [row for qid in qids for row in self.connections.get(qid, [])]}

        label = LABEL_RE.search(query)
        if label and label.group(1) in self.labels:
            return {"rows": [{"item": ENTITY + self.labels[label.group(1)]}]}
        return {"rows": []}


class LockedStore(KeyValueStore):
    """Store whose every operation fails, like a locked SQLite database."""

    def __init__(self, error=None):
        self.error = error or sqlite3.OperationalError("database is locked")

    def get(self, key):
        raise self.error

    def set(self, key, value):
        raise self.error

    def remove(self, key):
        raise self.error

    def keys(self):
        raise self.error


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def make_row():
    """Factory for SPARQL connection rows."""
    return _make_row


@pytest.fixture
def fake_wikidata():
    return FakeWikidata()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store():
    return MemoryStore(max_entries=1000)


@pytest.fixture
def persistent_cache(memory_store, clock):
    return PersistentCache(memory_store, clock=clock)


@pytest.fixture
def no_sleep():
    """Records inter-batch delays instead of sleeping."""
    delays = []

    async def _sleep(seconds):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep


@pytest.fixture
def locked_store():
    return LockedStore()
