"""
Edge category classification for Wikidata property labels.

Maps common property labels to semantic categories so edges can be
filtered by type. The table is closed: unknown labels fall into "other".
"""

from typing import Dict

EDGE_CATEGORIES = ("family", "education", "career", "geographic", "membership", "other")

EDGE_CATEGORY_MAP: Dict[str, str] = {
    # Family
    "spouse": "family",
    "father": "family",
    "mother": "family",
    "child": "family",
    "sibling": "family",
    "relative": "family",
    "partner": "family",
    "married name": "family",
    "family name": "family",
    "family": "family",
    "stepfather": "family",
    "stepmother": "family",
    # Education
    "educated at": "education",
    "alma mater": "education",
    "student of": "education",
    "doctoral advisor": "education",
    "doctoral student": "education",
    "academic degree": "education",
    "student": "education",
    # Career
    "employer": "career",
    "occupation": "career",
    "position held": "career",
    "notable work": "career",
    "field of work": "career",
    "award received": "career",
    "nominated for": "career",
    "military rank": "career",
    "profession": "career",
    "work period (start)": "career",
    "work period (end)": "career",
    "founded by": "career",
    "discoverer or inventor": "career",
    "developer": "career",
    "creator": "career",
    "author": "career",
    "director": "career",
    # Geographic
    "country": "geographic",
    "country of citizenship": "geographic",
    "place of birth": "geographic",
    "place of death": "geographic",
    "place of burial": "geographic",
    "residence": "geographic",
    "headquarters location": "geographic",
    "located in": "geographic",
    "location": "geographic",
    "capital": "geographic",
    "continent": "geographic",
    "located in the administrative territorial entity": "geographic",
    "territory claimed by": "geographic",
    "capital of": "geographic",
    "country of origin": "geographic",
    "shares border with": "geographic",
    "located on terrain feature": "geographic",
    # Membership & taxonomy
    "member of": "membership",
    "member of political party": "membership",
    "member of sports team": "membership",
    "part of": "membership",
    "has part": "membership",
    "facet of": "membership",
    "subclass of": "membership",
    "instance of": "membership",
    "affiliation": "membership",
    "religious order": "membership",
    "religion or worldview": "membership",
    "political party": "membership",
    "allegiance": "membership",
}


def categorize_edge(label: str) -> str:
    """Return the semantic category for a property label."""
    return EDGE_CATEGORY_MAP.get((label or "").lower().strip(), "other")
