from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from ..models.records import PartyType, PricingTier, RecordKind

"""Synonym tables mapping spreadsheet headers onto Product / Party fields.

Headers and aliases are compared in canonical form: lowercased, trimmed and
stripped of every character outside [a-z0-9]. Aliases below are written the
way they show up in real sheets ("batch_no", "valid till"); they are
canonicalized once when the table is built, so "Batch No." matches "batch_no".

The tables are static configuration. Field order matters only for output key
order; within a field, which alias matched is irrelevant.
"""

__all__ = [
    "canonical_header",
    "SynonymMap",
    "PRODUCT_SYNONYMS",
    "PARTY_SYNONYMS",
    "PRODUCT_DEFAULTS",
    "PARTY_DEFAULTS",
    "NUMERIC_FIELDS",
    "ENUM_FIELDS",
    "numeric_fallback",
    "synonyms_for",
    "defaults_for",
]

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def canonical_header(value: Any) -> str:
    """Return the comparison form of a header or alias ("Batch No." -> "batchno")."""
    return _NON_ALNUM.sub("", str(value).lower().strip())


@dataclass(frozen=True)
class SynonymMap:
    """Ordered, read-only table of target field -> canonical aliases."""

    _aliases: Mapping[str, frozenset[str]]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> SynonymMap:
        aliases: dict[str, frozenset[str]] = {}
        for target, variants in mapping.items():
            canon = {canonical_header(v) for v in variants}
            canon.discard("")
            aliases[target] = frozenset(canon)
        return cls(_aliases=MappingProxyType(aliases))

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self._aliases)

    def aliases(self, target: str) -> frozenset[str]:
        return self._aliases[target]

    def match(self, keys: Iterable[Any], target: str) -> Any | None:
        """Return the first key whose canonical form is an alias of ``target``.

        Ties between several matching columns go to whichever key comes first
        in ``keys`` (the row's own column order). No alias outranks another.
        """
        aliases = self._aliases[target]
        for key in keys:
            if canonical_header(key) in aliases:
                return key
        return None

    def __iter__(self):
        return iter(self._aliases.items())

    def __len__(self) -> int:
        return len(self._aliases)


PRODUCT_SYNONYMS = SynonymMap.from_mapping({
    "name": ["product", "item", "medicine", "name", "description", "brand",
             "product_name", "item_name"],
    "manufacturer": ["mfg", "manufacturer", "company", "brand_name", "lab", "mfr"],
    "batch": ["batch", "lot", "bno", "batch_no", "batch_number", "lot_no"],
    "expiry": ["exp", "expiry", "valid_till", "exp_date", "expiry_date"],
    "hsn": ["hsn", "hsn_code", "code"],
    "gstRate": ["gst", "tax", "gst_rate", "tax_rate", "igst"],
    "mrp": ["mrp", "max_price"],
    "purchaseRate": ["purchase", "p_rate", "cost", "buy_price", "purchase_rate"],
    "saleRate": ["sale", "s_rate", "rate", "selling_price", "wholesale_rate", "sale_rate"],
    "stock": ["stock", "qty", "quantity", "closing_stock", "balance"],
})

PARTY_SYNONYMS = SynonymMap.from_mapping({
    "name": ["party", "customer", "client", "name", "shop", "firm", "party_name"],
    "gstin": ["gstin", "gst_no", "gst", "tax_id"],
    "address": ["address", "location", "city", "area"],
    "phone": ["phone", "mobile", "contact", "tel", "phone_no"],
    "email": ["email", "mail", "e-mail"],
    "stateCode": ["state", "state_code", "code"],
    "dl1": ["dl1", "dl_no_20b", "drug_license_1", "license1"],
    "dl2": ["dl2", "dl_no_21b", "drug_license_2", "license2"],
    "type": ["type", "party_type", "customer_type"],
    "pricingTier": ["pricing_tier", "tier", "price_tier", "price_list"],
    "creditLimit": ["credit_limit", "limit"],
    "currentBalance": ["current_balance", "outstanding", "opening_balance", "balance"],
})

PRODUCT_DEFAULTS: Mapping[str, Any] = MappingProxyType({
    "gstRate": 12,
    "stock": 10,
    "purchaseRate": 0,
    "saleRate": 0,
    "mrp": 0,
})

PARTY_DEFAULTS: Mapping[str, Any] = MappingProxyType({
    "type": PartyType.WHOLESALE.value,
    "pricingTier": PricingTier.WHOLESALE.value,
    "creditLimit": 0,
    "currentBalance": 0,
})

NUMERIC_FIELDS: Mapping[RecordKind, frozenset[str]] = MappingProxyType({
    RecordKind.PRODUCT: frozenset({"gstRate", "mrp", "purchaseRate", "saleRate", "stock"}),
    RecordKind.PARTY: frozenset({"creditLimit", "currentBalance"}),
})

ENUM_FIELDS: Mapping[RecordKind, Mapping[str, type]] = MappingProxyType({
    RecordKind.PRODUCT: MappingProxyType({}),
    RecordKind.PARTY: MappingProxyType({"type": PartyType, "pricingTier": PricingTier}),
})


def numeric_fallback(target: str) -> int:
    # unparseable stock counts as the default opening stock
    return 10 if target == "stock" else 0


def synonyms_for(kind: RecordKind) -> SynonymMap:
    return PRODUCT_SYNONYMS if kind is RecordKind.PRODUCT else PARTY_SYNONYMS


def defaults_for(kind: RecordKind) -> Mapping[str, Any]:
    return PRODUCT_DEFAULTS if kind is RecordKind.PRODUCT else PARTY_DEFAULTS
