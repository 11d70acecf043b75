from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..db.store import RecordStore

"""Multi-field prefix search over an indexed record store.

The first query token drives index lookups: every searched field gets its own
case-insensitive prefix scan, over-fetched to limit * 2 so that de-duplication
and refinement still leave enough rows. The remaining tokens refine in memory:
each must occur somewhere in the record's concatenated field values.

A record is returned only if tokens[0] prefixes at least one searched field
and every other token is a substring of the joined values. Beyond that, result
order is whatever the store and the merge produce; there is no ranking.

Store faults are logged and turned into an empty result. This backs
search-as-you-type, where "no results" beats a crashed view and the next
keystroke retries anyway.
"""

__all__ = [
    "search",
    "tokenize",
    "DEFAULT_LIMIT",
]

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
OVERFETCH_FACTOR = 2

_WHITESPACE = re.compile(r"\s+")


def tokenize(query: str) -> list[str]:
    return [t for t in _WHITESPACE.split(query.lower().strip()) if t]


def _haystack(record: Mapping[str, Any]) -> str:
    return " ".join("" if v is None else str(v) for v in record.values()).lower()


def _contains_all(record: Mapping[str, Any], tokens: Sequence[str]) -> bool:
    haystack = _haystack(record)
    return all(token in haystack for token in tokens)


def _dedupe(batches: Iterable[Iterable[dict[str, Any]]], key_field: str) -> list[dict[str, Any]]:
    # position of first sighting, value of last sighting
    merged: dict[Any, dict[str, Any]] = {}
    for batch in batches:
        for record in batch:
            merged[record.get(key_field)] = record
    return list(merged.values())


def search(
    store: RecordStore,
    query: str,
    fields: Sequence[str],
    limit: int = DEFAULT_LIMIT,
    *,
    key_field: str | None = None,
) -> list[dict[str, Any]]:
    """Search ``store`` for records matching ``query`` on ``fields``.

    Args:
        store: Indexed record store (prefix_scan / ordered_scan)
        query: Free text; whitespace separates tokens
        fields: Searched fields; fields[0] orders the blank-query listing
        limit: Maximum number of records returned
        key_field: Primary key used for de-duplication (default: store.key_field or "id")

    Returns:
        At most ``limit`` records; empty when the store fails
    """
    if not fields:
        raise ValueError("search needs at least one field")
    if limit <= 0:
        return []
    if key_field is None:
        key_field = getattr(store, "key_field", "id")

    tokens = tokenize(query)
    try:
        if not tokens:
            return store.ordered_scan(fields[0], limit)[:limit]

        primary = tokens[0]
        batches = [store.prefix_scan(field, primary, limit * OVERFETCH_FACTOR) for field in fields]
    except Exception as e:
        logger.warning("search failed query=%r fields=%s: %s", query, list(fields), e)
        return []

    results = _dedupe(batches, key_field)
    logger.debug(
        "search primary=%r fields=%s candidates=%d", primary, list(fields), len(results)
    )

    remaining = tokens[1:]
    if remaining:
        results = [record for record in results if _contains_all(record, remaining)]

    return results[:limit]
