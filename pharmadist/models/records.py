from __future__ import annotations

from enum import Enum
from typing import Any, TypedDict

"""Record shapes for the Product and Party tables.

Normalized records are plain dicts keyed by target field name. The TypedDicts
below describe that shape for readers and type checkers; every key is optional
because a field with no matching spreadsheet column and no seeded default is
absent from the record rather than set to None.
"""

__all__ = [
    "RecordKind",
    "PartyType",
    "PricingTier",
    "ProductRecord",
    "PartyRecord",
    "PRODUCT_FIELDS",
    "PARTY_FIELDS",
]


class RecordKind(Enum):
    """Target schema selector for imports and table lookups."""
    PRODUCT = "product"
    PARTY = "party"

    @property
    def table_key(self) -> str:
        # config/pharmadist.yml uses plural table keys
        return "products" if self is RecordKind.PRODUCT else "parties"

    @classmethod
    def from_table_key(cls, key: str) -> RecordKind:
        for kind in cls:
            if kind.table_key == key or kind.value == key:
                return kind
        raise ValueError(f"unknown record kind: {key!r}")


class PartyType(str, Enum):
    WHOLESALE = "WHOLESALE"
    RETAIL = "RETAIL"


class PricingTier(str, Enum):
    WHOLESALE = "WHOLESALE"
    RETAIL = "RETAIL"
    HOSPITAL = "HOSPITAL"
    INSTITUTIONAL = "INSTITUTIONAL"


class ProductRecord(TypedDict, total=False):
    id: int
    name: str
    manufacturer: str
    batch: str
    expiry: Any  # text or date-like, copied as read
    hsn: str
    gstRate: float  # percent
    mrp: float
    purchaseRate: float
    saleRate: float
    stock: float  # unit count


class PartyRecord(TypedDict, total=False):
    id: int
    name: str
    gstin: str
    address: str
    phone: str
    email: str
    stateCode: str
    dl1: str  # drug licence (form 20B)
    dl2: str  # drug licence (form 21B)
    type: str  # PartyType value
    pricingTier: str  # PricingTier value
    creditLimit: float
    currentBalance: float


PRODUCT_FIELDS: tuple[str, ...] = tuple(k for k in ProductRecord.__annotations__ if k != "id")
PARTY_FIELDS: tuple[str, ...] = tuple(k for k in PartyRecord.__annotations__ if k != "id")
