from __future__ import annotations

import bisect
import numbers
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

"""Indexed record store contract and an in-process implementation.

Search and import code talk to a store only through three calls:

- prefix_scan(field, prefix, limit): records whose field text starts with
  prefix, case-insensitively
- ordered_scan(field, limit): records ordered by field ascending; records
  without the field are not part of the field's index and are skipped.
  Mixed-type fields order text, then numbers, then booleans, as PostgreSQL
  orders jsonb values; text itself compares by code point here and by the
  database collation in PostgresStore
- bulk_insert(records): append records, store assigns primary keys

MemoryStore keeps one table in memory. Per-field indexes are built lazily and
dropped on every insert; that is enough for tests, the CLI's offline mode and
sheets of a few hundred thousand rows.
"""

__all__ = [
    "RecordStore",
    "StoreError",
    "MemoryStore",
]


class StoreError(Exception):
    """Raised when a store lookup or insert cannot be completed."""


@runtime_checkable
class RecordStore(Protocol):
    key_field: str

    def prefix_scan(self, field: str, prefix: str, limit: int) -> list[dict[str, Any]]: ...

    def ordered_scan(self, field: str, limit: int) -> list[dict[str, Any]]: ...

    def bulk_insert(self, records: Iterable[Mapping[str, Any]]) -> list[int]: ...


def _index_key(value: Any) -> tuple[int, Any]:
    # jsonb type order: text, then numbers, then booleans
    if isinstance(value, bool):
        return (2, value)
    if isinstance(value, numbers.Real):
        return (1, value)
    return (0, str(value))


class MemoryStore:
    """In-memory table with auto-increment primary keys."""

    def __init__(self, records: Iterable[Mapping[str, Any]] | None = None, *, key_field: str = "id") -> None:
        self.key_field = key_field
        self._rows: dict[int, dict[str, Any]] = {}
        self._next_id = 1
        self._order_index: dict[str, list[tuple[tuple[int, Any], int]]] = {}
        self._text_index: dict[str, list[tuple[str, int]]] = {}
        if records:
            self.bulk_insert(records)

    def __len__(self) -> int:
        return len(self._rows)

    def get(self, key: int) -> dict[str, Any] | None:
        row = self._rows.get(key)
        return dict(row) if row is not None else None

    def all(self) -> list[dict[str, Any]]:
        return [dict(r) for r in self._rows.values()]

    def bulk_insert(self, records: Iterable[Mapping[str, Any]]) -> list[int]:
        """Insert records atomically; an explicit duplicate key rejects the whole batch."""
        pending: list[dict[str, Any]] = []
        next_id = self._next_id
        seen: set[int] = set()
        for record in records:
            row = dict(record)
            key = row.get(self.key_field)
            if key is None:
                key = next_id
                row[self.key_field] = key
            if key in self._rows or key in seen:
                raise StoreError(f"duplicate key {self.key_field}={key!r}")
            seen.add(key)
            if isinstance(key, int):
                next_id = max(next_id, key + 1)
            pending.append(row)

        for row in pending:
            self._rows[row[self.key_field]] = row
        self._next_id = next_id
        self._order_index.clear()
        self._text_index.clear()
        return [row[self.key_field] for row in pending]

    def _ordered(self, field: str) -> list[tuple[tuple[int, Any], int]]:
        index = self._order_index.get(field)
        if index is None:
            index = sorted(
                ((_index_key(row[field]), key) for key, row in self._rows.items()
                 if row.get(field) is not None),
                key=lambda item: item[0],
            )
            self._order_index[field] = index
        return index

    def _text(self, field: str) -> list[tuple[str, int]]:
        index = self._text_index.get(field)
        if index is None:
            # keys may mix ints and strings; sort on the text only
            index = sorted(
                ((str(row[field]).lower(), key) for key, row in self._rows.items()
                 if row.get(field) is not None),
                key=lambda item: item[0],
            )
            self._text_index[field] = index
        return index

    def prefix_scan(self, field: str, prefix: str, limit: int) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        needle = prefix.lower()
        index = self._text(field)
        start = bisect.bisect_left(index, needle, key=lambda item: item[0])
        out: list[dict[str, Any]] = []
        for text, key in index[start:]:
            if not text.startswith(needle) or len(out) >= limit:
                break
            out.append(dict(self._rows[key]))
        return out

    def ordered_scan(self, field: str, limit: int) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        return [dict(self._rows[key]) for _, key in self._ordered(field)[:limit]]
