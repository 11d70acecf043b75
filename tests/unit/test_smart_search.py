from __future__ import annotations

import pytest

from pharmadist.db import MemoryStore, StoreError
from pharmadist.search import search, tokenize


class RecordingStore(MemoryStore):
    """MemoryStore that remembers the scans it served."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.prefix_calls: list[tuple[str, str, int]] = []
        self.ordered_calls: list[tuple[str, int]] = []

    def prefix_scan(self, field, prefix, limit):
        self.prefix_calls.append((field, prefix, limit))
        return super().prefix_scan(field, prefix, limit)

    def ordered_scan(self, field, limit):
        self.ordered_calls.append((field, limit))
        return super().ordered_scan(field, limit)


class BrokenStore:
    key_field = "id"

    def prefix_scan(self, field, prefix, limit):
        raise StoreError("store not initialized")

    def ordered_scan(self, field, limit):
        raise RuntimeError("store not initialized")

    def bulk_insert(self, records):  # pragma: no cover - unused
        raise StoreError("read only")


@pytest.fixture()
def products() -> RecordingStore:
    return RecordingStore(
        [
            {"name": "Paracetamol", "batch": "B1"},
            {"name": "Panadol", "batch": "B2"},
        ]
    )


def test_tokenize():
    assert tokenize("  Para   500\tMG ") == ["para", "500", "mg"]
    assert tokenize("   ") == []


def test_prefix_match_on_any_field(products: RecordingStore):
    out = search(products, "para", ["name", "batch"], 10)
    assert [r["name"] for r in out] == ["Paracetamol"]


def test_every_field_is_scanned_with_overfetch(products: RecordingStore):
    search(products, "b", ["name", "batch"], 5)
    assert products.prefix_calls == [("name", "b", 10), ("batch", "b", 10)]


def test_match_through_second_field(products: RecordingStore):
    out = search(products, "B2", ["name", "batch"], 10)
    assert [r["name"] for r in out] == ["Panadol"]


def test_query_is_case_insensitive(products: RecordingStore):
    assert len(search(products, "PA", ["name"], 10)) == 2


def test_multi_token_refinement():
    store = MemoryStore([{"name": "Paracetamol 500mg"}, {"name": "Paracetamol 650mg"}])
    out = search(store, "para 500", ["name"], 10)
    assert [r["name"] for r in out] == ["Paracetamol 500mg"]


def test_refinement_uses_all_record_values():
    store = MemoryStore(
        [
            {"name": "Azee 500", "manufacturer": "Cipla"},
            {"name": "Azithral 500", "manufacturer": "Alembic"},
        ]
    )
    # "cipla" only occurs in a field that is not searched
    out = search(store, "az cipla", ["name"], 10)
    assert [r["name"] for r in out] == ["Azee 500"]


def test_every_remaining_token_must_match():
    store = MemoryStore([{"name": "Dolo 650", "batch": "DL1"}])
    assert search(store, "dolo 650 dl1", ["name"], 10) != []
    assert search(store, "dolo 650 xyz", ["name"], 10) == []


def test_records_matching_on_two_fields_returned_once():
    store = MemoryStore([{"name": "Cipla Cough", "manufacturer": "Cipla"}])
    out = search(store, "cipla", ["name", "manufacturer"], 10)
    assert len(out) == 1


def test_duplicate_keys_keep_first_position():
    store = MemoryStore(
        [
            {"name": "Alpha", "batch": "al1"},
            {"name": "Beta", "batch": "al2"},
        ]
    )
    out = search(store, "al", ["name", "batch"], 10)
    assert [r["id"] for r in out] == [1, 2]


def test_limit_is_respected():
    store = MemoryStore([{"name": f"Amox {i}", "batch": f"AM{i}"} for i in range(30)])
    for limit in (1, 5, 7, 30, 100):
        assert len(search(store, "am", ["name", "batch"], limit)) <= limit
    assert len(search(store, "am", ["name", "batch"], 7)) == 7


def test_zero_limit_returns_nothing(products: RecordingStore):
    assert search(products, "para", ["name"], 0) == []
    assert products.prefix_calls == []


def test_empty_query_lists_by_first_field():
    store = RecordingStore([{"name": n} for n in ["Zinc", "Aspirin", "Metformin", "Crocin", "Dolo", "Bcomplex"]])
    out = search(store, "   ", ["name", "batch"], 5)
    assert [r["name"] for r in out] == ["Aspirin", "Bcomplex", "Crocin", "Dolo", "Metformin"]
    assert store.ordered_calls == [("name", 5)]
    assert store.prefix_calls == []


def test_store_failure_returns_empty():
    assert search(BrokenStore(), "para", ["name"], 10) == []
    assert search(BrokenStore(), "", ["name"], 10) == []


def test_fields_required(products: RecordingStore):
    with pytest.raises(ValueError):
        search(products, "para", [], 10)


def test_custom_key_field():
    store = MemoryStore([{"code": "P1", "name": "Pan 40"}, {"code": "P2", "name": "Pan D"}], key_field="code")
    out = search(store, "pan", ["name"], 10)
    assert {r["code"] for r in out} == {"P1", "P2"}


def test_explicit_string_keys_next_to_generated_ones():
    store = MemoryStore([{"id": "a", "name": "Paracetamol"}, {"name": "Paracetamol"}])
    out = search(store, "para", ["name"], 10)
    assert [r["id"] for r in out] == ["a", 1]
