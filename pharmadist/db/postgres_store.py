from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from functools import partial
from typing import Any

import psycopg2
from psycopg2.extras import Json, execute_values

from .store import StoreError

"""PostgreSQL-backed record store.

Each table keeps one JSONB document per record next to a bigserial primary
key, so the loosely typed normalized records (absent fields stay absent) are
stored as they are:

    CREATE TABLE products (id bigserial PRIMARY KEY, data jsonb NOT NULL)

Prefix lookups run against expression indexes on lower(data->>'field') with
text_pattern_ops, which serve LIKE 'abc%' patterns. ensure_table() creates the
table and those indexes.

Bulk inserts go through psycopg2.extras.execute_values with RETURNING id so
the store hands back the assigned keys in insert order.
"""

__all__ = [
    "PostgresStore",
    "BatchMetrics",
]

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(name: str, what: str) -> str:
    if not _IDENTIFIER.match(name):
        raise StoreError(f"invalid {what} name: {name!r}")
    return name


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _json_default(value: Any) -> Any:
    # pandas Timestamp / datetime / date cells (expiry columns)
    if isinstance(value, (datetime, date)) or hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "item"):  # numpy scalars
        return value.item()
    return str(value)


_dumps = partial(json.dumps, default=_json_default, ensure_ascii=False)


@dataclass(frozen=True)
class BatchMetrics:
    """Timing for a single bulk insert call."""
    batch_size: int
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float


class PostgresStore:
    """Record store over one JSONB table, driven by a psycopg2 cursor.

    The cursor's connection owns the transaction; this class never commits.
    """

    def __init__(
        self,
        cursor: Any,
        table: str,
        *,
        key_field: str = "id",
        page_size: int = 1000,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self.cursor = cursor
        self.table = _check_identifier(table, "table")
        self.key_field = key_field
        self.page_size = page_size
        self.metrics_callback = metrics_callback

    def ensure_table(self, index_fields: Sequence[str] = ()) -> None:
        """Create the table and one prefix index per field (idempotent)."""
        statements = [
            f"CREATE TABLE IF NOT EXISTS {self.table} (id bigserial PRIMARY KEY, data jsonb NOT NULL)"
        ]
        for field in index_fields:
            _check_identifier(field, "field")
            statements.append(
                f"CREATE INDEX IF NOT EXISTS {self.table}_{field.lower()}_prefix_idx "
                f"ON {self.table} ((lower(data->>'{field}')) text_pattern_ops)"
            )
        try:
            for sql in statements:
                self.cursor.execute(sql)
        except psycopg2.Error as e:
            raise StoreError(f"failed to prepare table {self.table}: {e}") from e

    def _to_record(self, row: Sequence[Any]) -> dict[str, Any]:
        key, data = row[0], row[1]
        if isinstance(data, str):  # json returned as text by some cursor setups
            data = json.loads(data)
        record = dict(data or {})
        record[self.key_field] = key
        return record

    def _fetch(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        try:
            self.cursor.execute(sql, params)
            rows = self.cursor.fetchall()
        except psycopg2.Error as e:
            raise StoreError(f"query on {self.table} failed: {e}") from e
        return [self._to_record(r) for r in rows]

    def prefix_scan(self, field: str, prefix: str, limit: int) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        _check_identifier(field, "field")
        sql = (
            f"SELECT id, data FROM {self.table} "
            "WHERE lower(data->>%s) LIKE %s "
            "ORDER BY lower(data->>%s), id LIMIT %s"
        )
        pattern = _escape_like(prefix.lower()) + "%"
        return self._fetch(sql, (field, pattern, field, limit))

    def ordered_scan(self, field: str, limit: int) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        _check_identifier(field, "field")
        sql = (
            f"SELECT id, data FROM {self.table} "
            "WHERE data->>%s IS NOT NULL "
            "ORDER BY data->%s, id LIMIT %s"
        )
        return self._fetch(sql, (field, field, limit))

    def bulk_insert(self, records: Iterable[Mapping[str, Any]]) -> list[int]:
        rows = []
        for record in records:
            doc = {k: v for k, v in record.items() if k != self.key_field}
            rows.append((Json(doc, dumps=_dumps),))
        if not rows:
            return []

        sql = f"INSERT INTO {self.table} (data) VALUES %s RETURNING id"
        start_time = time.time()
        try:
            # a failed batch must not poison earlier batches of the same transaction
            self.cursor.execute("SAVEPOINT pharmadist_bulk_insert")
            returned = execute_values(self.cursor, sql, rows, page_size=self.page_size, fetch=True)
            self.cursor.execute("RELEASE SAVEPOINT pharmadist_bulk_insert")
        except psycopg2.Error as e:
            try:
                self.cursor.execute("ROLLBACK TO SAVEPOINT pharmadist_bulk_insert")
            except psycopg2.Error:
                logger.debug("rollback to savepoint failed table=%s", self.table, exc_info=True)
            raise StoreError(f"bulk insert into {self.table} failed: {e}") from e
        finally:
            end_time = time.time()
            if self.metrics_callback is not None:
                self.metrics_callback(
                    BatchMetrics(
                        batch_size=len(rows),
                        elapsed_seconds=end_time - start_time,
                        start_time=start_time,
                        end_time=end_time,
                    )
                )
        return [r[0] for r in returned or []]
