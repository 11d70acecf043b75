from __future__ import annotations

import math
import numbers
import re
from decimal import Decimal
from collections.abc import Iterable, Mapping
from typing import Any

from ..models.records import RecordKind
from .synonyms import (
    ENUM_FIELDS,
    NUMERIC_FIELDS,
    defaults_for,
    numeric_fallback,
    synonyms_for,
)

"""Spreadsheet row normalization onto the Product / Party schemas.

normalize() is pure and total: one output record per input row, no
exceptions for malformed cells, no store access. Persisting the records is
the caller's job (see services.importer for the chunked bulk insert).

Per row:
1. seed the schema defaults
2. for each target field, pick the first row key (row order) whose canonical
   header is one of the field's aliases
3. copy the value; numeric fields go through a leading-float parse that falls
   back to 10 (stock) or 0 (everything else) instead of producing NaN
4. fields without a matching column keep their default or stay absent
"""

__all__ = [
    "normalize",
    "normalize_row",
    "parse_number",
]

# leading decimal literal, same acceptance as a lenient float parse ("12%" -> 12)
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _finite(value: Any) -> float | None:
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_number(value: Any) -> float | None:
    """Parse the leading number of ``value``; None when there is none.

    NaN, infinities and values too large for a float count as "no number".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (numbers.Real, Decimal)):
        return _finite(value)
    if isinstance(value, str):
        m = _LEADING_FLOAT.match(value)
        if m is None:
            return None
        return _finite(m.group(1))
    return None


def _coerce_enum(value: Any, enum_cls: type, default: Any) -> Any:
    if isinstance(value, str):
        candidate = value.strip().upper()
        if candidate in enum_cls.__members__:
            return enum_cls[candidate].value
    return default


def normalize_row(row: Mapping[str, Any], kind: RecordKind) -> dict[str, Any]:
    """Normalize a single raw row. See module docstring for the rules."""
    synonyms = synonyms_for(kind)
    defaults = defaults_for(kind)
    numeric = NUMERIC_FIELDS[kind]
    enums = ENUM_FIELDS[kind]

    normalized: dict[str, Any] = dict(defaults)
    keys = list(row.keys())

    for target in synonyms.fields:
        source_key = synonyms.match(keys, target)
        if source_key is None:
            continue
        value = row[source_key]
        if target in numeric:
            number = parse_number(value)
            value = numeric_fallback(target) if number is None else number
        elif target in enums:
            value = _coerce_enum(value, enums[target], defaults.get(target))
        normalized[target] = value

    return normalized


def normalize(rows: Iterable[Mapping[str, Any]], kind: RecordKind) -> list[dict[str, Any]]:
    """Map raw spreadsheet rows onto the target schema for ``kind``.

    Args:
        rows: Raw rows (header -> cell value), in sheet order
        kind: RecordKind.PRODUCT or RecordKind.PARTY

    Returns:
        One normalized record per input row, same order
    """
    return [normalize_row(row, kind) for row in rows]
