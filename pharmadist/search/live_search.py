from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from ..db.store import RecordStore
from .smart_search import DEFAULT_LIMIT, search

"""Stale-result guard for search-as-you-type callers.

search() itself takes no cancellation signal. A view that fires one search
per keystroke wraps it in LiveSearch: every run() takes a ticket, and a run
whose ticket was superseded while it executed returns None so the caller
drops it instead of painting outdated rows over newer ones.
"""

__all__ = [
    "LiveSearch",
]

logger = logging.getLogger(__name__)


class LiveSearch:
    """Ticketed wrapper around search() for one table and field set."""

    def __init__(
        self,
        store: RecordStore,
        fields: Sequence[str],
        limit: int = DEFAULT_LIMIT,
        *,
        min_chars: int = 1,
    ) -> None:
        if not fields:
            raise ValueError("LiveSearch needs at least one field")
        self.store = store
        self.fields = list(fields)
        self.limit = limit
        self.min_chars = min_chars
        self._ticket = 0
        self._lock = threading.Lock()

    def submit(self) -> int:
        """Take a new ticket; every earlier ticket becomes stale."""
        with self._lock:
            self._ticket += 1
            return self._ticket

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._ticket

    def run(self, query: str) -> list[dict[str, Any]] | None:
        """Search for ``query``; None when a newer query arrived meanwhile.

        Queries shorter than ``min_chars`` (after trimming) list the table
        ordered by the first field, same as a blank query.
        """
        ticket = self.submit()
        effective = query if len(query.strip()) >= self.min_chars else ""
        results = search(self.store, effective, self.fields, self.limit)
        if not self.is_current(ticket):
            logger.debug("dropping stale results ticket=%d query=%r", ticket, query)
            return None
        return results
