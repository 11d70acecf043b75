"""Spreadsheet import normalization (synonym-based header matching)."""

from .normalizer import normalize, normalize_row, parse_number
from .synonyms import PARTY_SYNONYMS, PRODUCT_SYNONYMS, SynonymMap, canonical_header, synonyms_for

__all__ = [
    "normalize",
    "normalize_row",
    "parse_number",
    "SynonymMap",
    "canonical_header",
    "synonyms_for",
    "PRODUCT_SYNONYMS",
    "PARTY_SYNONYMS",
]
