"""
Tests for layered graph generation (src/graph/graph_generator.py).
"""

import random

import pytest

from src.cache.ttl_cache import PersistentCache
from src.common.errors import ResolutionError, ValidationError
from src.crawler.connection_fetcher import ConnectionFetcher
from src.graph.graph_generator import (
    DEPTH_CONFIG,
    DepthConfig,
    GraphGenerator,
    get_depth_config,
    make_edge_id,
)


@pytest.fixture
def generator(fake_wikidata, persistent_cache, no_sleep):
    fetcher = ConnectionFetcher(fake_wikidata, persistent_cache)
    return GraphGenerator(fetcher, rng=random.Random(7), sleep=no_sleep)


def _node(result, qid):
    return next(node for node in result.nodes if node.id == qid)


def test_depth_config_fallback():
    assert get_depth_config(1) == DEPTH_CONFIG[1]
    assert get_depth_config(11) == DEPTH_CONFIG[3]
    assert get_depth_config(0) == DEPTH_CONFIG[3]


def test_depth_config_shrinks_with_depth():
    limits = [DEPTH_CONFIG[d].max_nodes_per_layer for d in range(1, 11)]
    assert limits == sorted(limits, reverse=True)


def test_make_edge_id():
    assert make_edge_id("Q42", "Q1", "born in") == "Q42-Q1-born in"


@pytest.mark.asyncio
async def test_single_connection_depth_one(generator, fake_wikidata, make_row):
    fake_wikidata.connections = {"Q42": [make_row("Q42", "Q1", "born in", "Cambridge")]}

    result = await generator.generate(qids=["Q42"], depth=1)

    assert len(result.nodes) == 2
    assert len(result.edges) == 1
    assert _node(result, "Q42").is_seed is True
    assert _node(result, "Q1").is_seed is False
    edge = result.edges[0]
    assert (edge.id, edge.source, edge.target, edge.label) == ("Q42-Q1-born in", "Q42", "Q1", "born in")
    assert edge.category == "other"


@pytest.mark.asyncio
async def test_seed_and_target_node_fields(generator, fake_wikidata, make_row):
    fake_wikidata.connections = {
        "Q42": [
            make_row("Q42", "Q2", "spouse", "Jane", is_human=True, type_label="human", image="http://img/jane.jpg"),
            make_row("Q42", "Q145", "country of citizenship", "UK", type_qid="Q6256", type_label="country"),
            make_row("Q42", "Q350", "place of birth", "Cambridge", type_qid="Q515", type_label="city"),
            make_row("Q42", "Q9", "genre", "Satire"),
        ]
    }

    result = await generator.generate(qids=["q42"], depth=1)

    seed = _node(result, "Q42")
    assert (seed.label, seed.group, seed.size, seed.title) == ("Q42", "concept", 40, "Loading...")

    spouse = _node(result, "Q2")
    assert (spouse.group, spouse.shape, spouse.size, spouse.image) == ("person", "circularImage", 30, "http://img/jane.jpg")
    assert spouse.title == "Type: human"
    assert _node(result, "Q145").size == 22
    assert _node(result, "Q350").size == 18
    concept = _node(result, "Q9")
    assert (concept.group, concept.shape, concept.size) == ("concept", "dot", 15)
    assert concept.image.startswith("https://upload.wikimedia.org/")

    categories = {edge.label: edge.category for edge in result.edges}
    assert categories["spouse"] == "family"
    assert categories["place of birth"] == "geographic"


@pytest.mark.asyncio
async def test_names_are_resolved_and_unresolvable_skipped(generator, fake_wikidata, make_row):
    fake_wikidata.labels = {"Douglas Adams": "Q42"}
    fake_wikidata.connections = {"Q42": [make_row("Q42", "Q1", "born in")]}

    result = await generator.generate(names=["Douglas Adams", "No Such Entity"], depth=1)

    seed = _node(result, "Q42")
    assert seed.label == "Douglas Adams"
    assert seed.is_seed
    assert seed.title == "Type: Initial Search Entity"
    assert len(result.nodes) == 2


@pytest.mark.asyncio
async def test_name_resolving_to_given_qid_relabels_seed(generator, fake_wikidata):
    fake_wikidata.labels = {"Douglas Adams": "Q42"}

    result = await generator.generate(names=["Douglas Adams"], qids=["Q42"], depth=1)

    assert len(result.nodes) == 1
    assert result.nodes[0].label == "Douglas Adams"
    assert fake_wikidata.batches == [["Q42"]]


@pytest.mark.asyncio
async def test_all_names_unresolvable_raises(generator):
    with pytest.raises(ResolutionError):
        await generator.generate(names=["Nobody", "Nobody Else"], depth=1)


@pytest.mark.asyncio
async def test_validation_errors_before_network(generator, fake_wikidata):
    with pytest.raises(ValidationError):
        await generator.generate(depth=1)
    with pytest.raises(ValidationError):
        await generator.generate(qids=["Q42"], depth=0)
    with pytest.raises(ValidationError):
        await generator.generate(qids=["not-a-qid"], depth=1)
    with pytest.raises(ValidationError):
        await generator.generate(names=["  "], depth=1)
    assert fake_wikidata.queries == []


@pytest.mark.asyncio
async def test_bare_string_seeds_are_rejected(generator, fake_wikidata):
    fake_wikidata.labels = {"A": "Q1", "d": "Q2", "a": "Q3"}
    with pytest.raises(ValidationError):
        await generator.generate(names="Ada", depth=1)
    with pytest.raises(ValidationError):
        await generator.generate(qids="Q42", depth=1)
    assert fake_wikidata.queries == []


@pytest.mark.asyncio
async def test_empty_names_list_is_rejected_even_with_qids(generator, fake_wikidata):
    with pytest.raises(ValidationError):
        await generator.generate(names=[], qids=["Q42"], depth=1)
    with pytest.raises(ValidationError):
        await generator.generate(names=["Douglas Adams"], qids=[], depth=1)
    assert fake_wikidata.queries == []


@pytest.mark.asyncio
async def test_failing_cache_store_does_not_abort_crawl(fake_wikidata, locked_store, no_sleep, make_row):
    fake_wikidata.connections = {"Q42": [make_row("Q42", "Q1", "born in")]}
    fetcher = ConnectionFetcher(fake_wikidata, PersistentCache(locked_store))
    generator = GraphGenerator(fetcher, sleep=no_sleep)

    result = await generator.generate(qids=["Q42"], depth=1)

    assert sorted(node.id for node in result.nodes) == ["Q1", "Q42"]
    assert len(result.edges) == 1


@pytest.mark.asyncio
async def test_duplicate_triples_across_batches_collapse_to_one_edge(
    fake_wikidata, persistent_cache, no_sleep, make_row, monkeypatch
):
    monkeypatch.setitem(DEPTH_CONFIG, 1, DepthConfig(max_nodes_per_layer=50, batch_size=1, result_limit=100))
    # Both batches return (Q1, Q2, "knows")
    fake_wikidata.connections = {
        "Q1": [make_row("Q1", "Q2", "knows"), make_row("Q1", "Q2", "knows")],
        "Q3": [make_row("Q1", "Q2", "knows")],
    }
    generator = GraphGenerator(ConnectionFetcher(fake_wikidata, persistent_cache), sleep=no_sleep)

    result = await generator.generate(qids=["Q1", "Q3"], depth=1)

    assert fake_wikidata.batches == [["Q1"], ["Q3"]]
    assert [edge.id for edge in result.edges] == ["Q1-Q2-knows"]
    assert sorted(node.id for node in result.nodes) == ["Q1", "Q2", "Q3"]


@pytest.mark.asyncio
async def test_parallel_labels_make_distinct_edges(generator, fake_wikidata, make_row):
    fake_wikidata.connections = {
        "Q1": [make_row("Q1", "Q2", "employer"), make_row("Q1", "Q2", "member of")],
    }
    result = await generator.generate(qids=["Q1"], depth=1)
    assert len(result.nodes) == 2
    assert [edge.label for edge in result.edges] == ["employer", "member of"]


@pytest.mark.asyncio
async def test_layers_expand_only_new_nodes(generator, fake_wikidata, make_row):
    fake_wikidata.connections = {
        "Q1": [make_row("Q1", "Q2", "child")],
        "Q2": [make_row("Q2", "Q1", "father"), make_row("Q2", "Q3", "child")],
        "Q3": [make_row("Q3", "Q4", "child")],
    }

    result = await generator.generate(qids=["Q1"], depth=3)

    # Q1 is never re-fetched although it is rediscovered from Q2
    assert fake_wikidata.batches == [["Q1"], ["Q2"], ["Q3"]]
    assert {node.id for node in result.nodes} == {"Q1", "Q2", "Q3", "Q4"}
    assert len(result.edges) == 4


@pytest.mark.asyncio
async def test_stops_early_when_layer_is_empty(generator, fake_wikidata, make_row):
    fake_wikidata.connections = {"Q1": [make_row("Q1", "Q2", "child")]}

    result = await generator.generate(qids=["Q1"], depth=5)

    assert fake_wikidata.batches == [["Q1"], ["Q2"]]
    assert len(result.nodes) == 2


@pytest.mark.asyncio
async def test_oversized_layer_is_randomly_sampled(generator, fake_wikidata, make_row):
    targets = [f"Q{100 + i}" for i in range(60)]
    fake_wikidata.connections = {"Q1": [make_row("Q1", t, "has part") for t in targets]}

    result = await generator.generate(qids=["Q1"], depth=2)

    layer_two = [qid for batch in fake_wikidata.batches[1:] for qid in batch]
    limit = DEPTH_CONFIG[2].max_nodes_per_layer
    assert len(layer_two) == limit
    assert set(layer_two) <= set(targets)
    assert layer_two != targets[:limit]
    assert len(result.nodes) == 61


@pytest.mark.asyncio
async def test_batches_are_sequential_with_delay_between(
    fake_wikidata, persistent_cache, no_sleep, make_row, monkeypatch
):
    monkeypatch.setitem(DEPTH_CONFIG, 1, DepthConfig(max_nodes_per_layer=50, batch_size=2, result_limit=100))
    fetcher = ConnectionFetcher(fake_wikidata, persistent_cache)
    generator = GraphGenerator(fetcher, batch_delay=0.25, sleep=no_sleep)

    await generator.generate(qids=["Q1", "Q2", "Q3", "Q4", "Q5"], depth=1)

    assert fake_wikidata.batches == [["Q1", "Q2"], ["Q3", "Q4"], ["Q5"]]
    # No delay after the last batch of the layer
    assert no_sleep.delays == [0.25, 0.25]


@pytest.mark.asyncio
async def test_batch_uses_depth_result_limit(generator, fake_wikidata):
    await generator.generate(qids=["Q1"], depth=1)
    assert f"LIMIT {DEPTH_CONFIG[1].result_limit}" in fake_wikidata.queries[0]


@pytest.mark.asyncio
async def test_failed_batch_yields_partial_graph(generator, fake_wikidata):
    fake_wikidata.fail = True

    result = await generator.generate(qids=["Q1"], depth=2)

    assert [node.id for node in result.nodes] == ["Q1"]
    assert result.edges == []


@pytest.mark.asyncio
async def test_progress_messages(generator, fake_wikidata, make_row):
    fake_wikidata.labels = {"Douglas Adams": "Q42"}
    fake_wikidata.connections = {"Q42": [make_row("Q42", "Q1", "born in")]}
    messages = []

    await generator.generate(names=["Douglas Adams"], depth=1, on_progress=messages.append)

    assert messages == [
        'Resolving "Douglas Adams"...',
        "Processing depth 1/1 — 1 nodes",
        "Done — 2 nodes, 1 edges",
    ]


@pytest.mark.asyncio
async def test_to_dict(generator, fake_wikidata, make_row):
    fake_wikidata.connections = {"Q42": [make_row("Q42", "Q1", "born in")]}
    result = await generator.generate(qids=["Q42"], depth=1)

    data = result.to_dict()
    assert data["nodes"][0]["id"] == "Q42"
    assert data["nodes"][0]["is_seed"] is True
    assert data["edges"][0]["source"] == "Q42"
    assert data["edges"][0]["arrows"] == "to"
