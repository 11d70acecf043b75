"""Multi-field prefix search."""

from .live_search import LiveSearch
from .smart_search import DEFAULT_LIMIT, search, tokenize

__all__ = [
    "search",
    "tokenize",
    "DEFAULT_LIMIT",
    "LiveSearch",
]
