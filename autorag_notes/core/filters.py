"""Tenant-isolation predicates for AutoRAG searches.

AutoRAG has no "starts with" operator, so a user's namespace ``<email>/`` is
expressed as the lexical range ``[<email>/, <email>/z)`` over the ``folder``
attribute. The upper bound holds as long as no folder segment directly under
the namespace sorts at or after ``z`` (true for note ids and ``.metadata``;
not true for segments starting with a non-ASCII character).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from autorag_notes.storage.paths import is_sidecar_key, user_folder

Filter = dict[str, Any]

_COMPARISONS = {
    "eq": lambda a, b: a == b,
    "ne": lambda a, b: a != b,
    "gt": lambda a, b: a > b,
    "gte": lambda a, b: a >= b,
    "lt": lambda a, b: a < b,
    "lte": lambda a, b: a <= b,
}


def _folder_range(user: str) -> list[Filter]:
    folder = user_folder(user)
    return [
        {"type": "gte", "key": "folder", "value": folder},
        {"type": "lt", "key": "folder", "value": f"{folder}z"},
    ]


def build_user_filter(user: str) -> Filter:
    """Restrict matches to ``user``'s namespace."""
    return {"type": "and", "filters": _folder_range(user)}


def build_advanced_filter(
    user: str,
    since_timestamp: Optional[int] = None,
    until_timestamp: Optional[int] = None,
) -> Filter:
    """Namespace restriction intersected with optional timestamp bounds.

    Args:
        user: Owner email.
        since_timestamp: Inclusive lower bound in epoch milliseconds.
        until_timestamp: Inclusive upper bound in epoch milliseconds.

    Returns:
        An ``and`` predicate. Bounds left as ``None`` are omitted.
    """
    filters = _folder_range(user)
    if since_timestamp is not None:
        filters.append({"type": "gte", "key": "timestamp", "value": str(since_timestamp)})
    if until_timestamp is not None:
        filters.append({"type": "lte", "key": "timestamp", "value": str(until_timestamp)})
    return {"type": "and", "filters": filters}


def _coerce(left: Any, right: Any) -> tuple[Any, Any]:
    # Numeric strings (timestamps) compare as numbers, everything else as text.
    try:
        return float(left), float(right)
    except (TypeError, ValueError):
        return str(left), str(right)


def matches_filter(predicate: Filter, attributes: Mapping[str, Any]) -> bool:
    """Evaluate a predicate tree against an attribute mapping.

    A comparison on an attribute that is absent never matches.

    Raises:
        ValueError: If the predicate uses an unknown operator.
    """
    kind = predicate.get("type")
    if kind == "and":
        return all(matches_filter(child, attributes) for child in predicate.get("filters", []))
    if kind == "or":
        return any(matches_filter(child, attributes) for child in predicate.get("filters", []))

    compare = _COMPARISONS.get(kind)
    if compare is None:
        raise ValueError(f"Unsupported filter type: {kind!r}")

    key = predicate.get("key")
    if key not in attributes or attributes[key] is None:
        return False
    left, right = _coerce(attributes[key], predicate.get("value"))
    return compare(left, right)


def folder_of(key: str) -> str:
    """The ``folder`` attribute AutoRAG assigns to an object key."""
    head, sep, _ = key.rpartition("/")
    return f"{head}/" if sep else ""


def filter_note_results(results: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop results without a filename and results that are metadata sidecars."""
    return [
        result
        for result in results
        if result.get("filename") and not is_sidecar_key(str(result["filename"]))
    ]
