"""Record store adapters (in-memory and PostgreSQL)."""

from .store import MemoryStore, RecordStore, StoreError

__all__ = [
    "MemoryStore",
    "RecordStore",
    "StoreError",
]
