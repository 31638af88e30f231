"""
Tests for crawl time estimation (src/graph/time_estimator.py).
"""

import pytest

from src.graph.time_estimator import ESTIMATE_NOTE, estimate_time, format_duration


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0s"),
        (59.9, "59s"),
        (60, "1m 0s"),
        (125.5, "2m 5s"),
        (3600, "1h 0m"),
        (3725, "1h 2m"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_single_entity_depth_one():
    estimate = estimate_time(names=["Douglas Adams"], depth=1)

    assert estimate["per_depth"] == [
        {"depth": 1, "nodes": 1, "estimated_new_nodes": 20, "time_seconds": pytest.approx(1.9)}
    ]
    assert estimate["total_seconds"] == pytest.approx(1.9)
    assert estimate["formatted_time"] == "1s"
    assert estimate["note"] == ESTIMATE_NOTE


def test_layers_follow_depth_config():
    estimate = estimate_time(names=["A"], qids=["Q1"], depth=3)

    per_depth = estimate["per_depth"]
    assert [d["depth"] for d in per_depth] == [1, 2, 3]
    # depth 1: 2 nodes -> min(40, 100) = 40, next layer capped at 50 -> 40
    assert per_depth[1]["nodes"] == 40
    # depth 2: min(400, 200) = 200, capped at 40
    assert per_depth[2]["nodes"] == 40
    assert estimate["total_seconds"] == pytest.approx(sum(d["time_seconds"] for d in per_depth))


def test_estimate_grows_with_depth():
    shallow = estimate_time(qids=["Q1"], depth=1)["total_seconds"]
    deep = estimate_time(qids=["Q1"], depth=10)["total_seconds"]
    assert deep > shallow
