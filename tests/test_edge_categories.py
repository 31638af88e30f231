"""
Tests for edge categorization (src/graph/edge_categories.py).
"""

import pytest

from src.graph.edge_categories import EDGE_CATEGORIES, EDGE_CATEGORY_MAP, categorize_edge


@pytest.mark.parametrize(
    "label, expected",
    [
        ("spouse", "family"),
        ("educated at", "education"),
        ("employer", "career"),
        ("founded by", "career"),
        ("place of birth", "geographic"),
        ("member of", "membership"),
        ("instance of", "membership"),
    ],
)
def test_known_labels(label, expected):
    assert categorize_edge(label) == expected


def test_case_and_whitespace_insensitive():
    assert categorize_edge("  Educated At ") == "education"


def test_unknown_label_is_other():
    assert categorize_edge("educated") == "other"
    assert categorize_edge("link") == "other"
    assert categorize_edge("") == "other"


def test_table_only_uses_known_categories():
    assert set(EDGE_CATEGORY_MAP.values()) <= set(EDGE_CATEGORIES)
