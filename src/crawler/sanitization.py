"""
Input sanitization and validation for SPARQL queries.

Everything user-supplied passes through here before it is interpolated
into a query string.
"""

import math
import re
from typing import List

from src.common.errors import ValidationError

QID_PATTERN = re.compile(r"Q[0-9]+")
MAX_NAME_LENGTH = 200
MAX_DEPTH = 10
MAX_ENTITIES = 10

# Backslash must come first so the escapes added below are not escaped again.
_SPARQL_ESCAPES = (
    ("\\", "\\\\"),
    ('"', '\\"'),
    ("'", "\\'"),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\t", "\\t"),
)


def sanitize_name(name: str) -> str:
    """
    Validate an entity name and escape it for use inside a quoted SPARQL literal.

    Raises:
        ValidationError: if the name is empty, not a string, or longer than 200 characters
    """
    if not name or not isinstance(name, str):
        raise ValidationError("Entity name must be a non-empty string")

    name = name.strip()
    if not name:
        raise ValidationError("Entity name cannot be empty or whitespace only")

    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Entity name is too long (max {MAX_NAME_LENGTH} characters)")

    for char, escaped in _SPARQL_ESCAPES:
        name = name.replace(char, escaped)
    return name


def is_valid_qid(qid: str) -> bool:
    """Return True if `qid` is a canonical Wikidata item id (e.g. "Q42")."""
    if not qid or not isinstance(qid, str):
        return False
    return QID_PATTERN.fullmatch(qid) is not None


def sanitize_qid(qid: str) -> str:
    """Trim and uppercase a QID, rejecting anything that is not `Q<digits>`."""
    if not qid or not isinstance(qid, str):
        raise ValidationError("QID must be a non-empty string")

    qid = qid.strip().upper()
    if not is_valid_qid(qid):
        raise ValidationError(
            f"Invalid QID format: {qid}. Expected format: Q followed by digits (e.g., Q42)"
        )
    return qid


def validate_depth(depth) -> int:
    """Floor `depth` to an int and check it lies in 1..10."""
    if isinstance(depth, bool) or not isinstance(depth, (int, float)) or math.isnan(depth):
        raise ValidationError("Depth must be a number")
    if math.isinf(depth):
        raise ValidationError(f"Depth cannot exceed {MAX_DEPTH} (performance limit)")

    depth = math.floor(depth)
    if depth < 1:
        raise ValidationError("Depth must be at least 1")
    if depth > MAX_DEPTH:
        raise ValidationError(f"Depth cannot exceed {MAX_DEPTH} (performance limit)")
    return depth


def validate_entity_list(entities: List[str], max_entities: int = MAX_ENTITIES) -> List[str]:
    """
    Validate a list of entity names or ids.

    Entries are trimmed, blank entries dropped, and duplicates removed while
    preserving first-seen order.
    """
    if not isinstance(entities, (list, tuple)):
        raise ValidationError("Entities must be provided as a list")

    if len(entities) == 0:
        raise ValidationError("At least one entity must be provided")

    if len(entities) > max_entities:
        raise ValidationError(f"Too many entities (max {max_entities})")

    seen = set()
    unique: List[str] = []
    for entity in entities:
        if not isinstance(entity, str):
            raise ValidationError("All entities must be strings")
        trimmed = entity.strip()
        if not trimmed:
            continue
        if trimmed not in seen:
            seen.add(trimmed)
            unique.append(trimmed)

    if not unique:
        raise ValidationError("At least one non-empty entity must be provided")

    return unique
