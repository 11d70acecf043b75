"""Domain models for the pharmadist import and search tools.

Record shapes (Product / Party), import metrics and structured error records.
"""

from .error_record import ErrorRecord
from .import_result import BatchStatsAccumulator, ChunkStat, ImportResult, ImportStatus
from .records import (
    PARTY_FIELDS,
    PRODUCT_FIELDS,
    PartyRecord,
    PartyType,
    PricingTier,
    ProductRecord,
    RecordKind,
)

__all__ = [
    # Record shapes
    "RecordKind",
    "PartyType",
    "PricingTier",
    "ProductRecord",
    "PartyRecord",
    "PRODUCT_FIELDS",
    "PARTY_FIELDS",
    # Import results
    "ImportResult",
    "ImportStatus",
    "ChunkStat",
    "BatchStatsAccumulator",
    # Errors
    "ErrorRecord",
]
