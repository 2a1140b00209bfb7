"""
Ratings normalization and formatting.

MDBList responses come in more than one shape: rating values at the top
level, nested under a "ratings" object, or (on the current API) a
"ratings" list of {"source", "value"} items. normalize_ratings() folds all
of them into a RatingValues before anything is formatted.
"""

import re
from typing import Any, Dict, Optional

from constants import RATING_FIELDS, RATING_SOURCE_ALIASES, RATINGS_HEADER
from models import RatingValues


_LABELS: Dict[str, str] = dict(RATING_FIELDS)


def _usable(value: Any) -> bool:
    """Non-null, non-empty scalars. Nested objects and arrays never count."""
    if value is None or isinstance(value, (dict, list, tuple)):
        return False
    if isinstance(value, str):
        return value != ""
    return True


def _from_mapping(source: Dict[str, Any]) -> RatingValues:
    return RatingValues(**{
        name: source.get(name) if _usable(source.get(name)) else None
        for name, _ in RATING_FIELDS
    })


def _from_list(items: list) -> RatingValues:
    values: Dict[str, Any] = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        source = re.sub(r'[^a-z]', '', str(item.get("source", "")).lower())
        name = RATING_SOURCE_ALIASES.get(source)
        if name and name not in values and _usable(item.get("value")):
            values[name] = item["value"]
    return RatingValues(**values)


def normalize_ratings(snapshot: Any) -> RatingValues:
    """
    Extract the known rating values from a ratings snapshot.

    A non-empty nested "ratings" object takes precedence over top-level
    fields. Anything that is not a JSON object yields no ratings.

    Args:
        snapshot: Decoded MDBList response

    Returns:
        RatingValues with a slot filled for each usable rating
    """
    if not isinstance(snapshot, dict):
        return RatingValues()

    nested = snapshot.get("ratings")
    if isinstance(nested, dict) and nested:
        return _from_mapping(nested)
    if isinstance(nested, list) and nested:
        return _from_list(nested)
    return _from_mapping(snapshot)


def format_value(value: Any) -> str:
    """Render a value the way it reads in JSON: 94.0 -> "94", False -> "false"."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_ratings(values: RatingValues) -> Optional[str]:
    """
    Build the ratings block from normalized values.

    Rotten Tomatoes gets a "%" suffix unless it already has one.

    Returns:
        "Ratings" header plus one "<Label>: <value>" line per rating,
        or None when there is nothing to show
    """
    lines = []
    for name, value in values.present():
        text = format_value(value)
        if name == "tomato" and "%" not in text:
            text = f"{text}%"
        lines.append(f"{_LABELS[name]}: {text}")

    if not lines:
        return None
    return "\n".join([RATINGS_HEADER, *lines])


def format_ratings_block(snapshot: Any) -> Optional[str]:
    """Normalize a raw snapshot and format it in one step."""
    return format_ratings(normalize_ratings(snapshot))


def prepend_block(block: str, description: Any) -> str:
    """Put the ratings block above the description, separated by a blank line."""
    # null, missing, "" and other falsy values count as no description
    if description is None or description == "" or description == 0:
        original = ""
    else:
        original = format_value(description)
    return f"{block}\n\n{original}".strip()
