# tests/test_store.py
from unittest.mock import MagicMock
from dealwatch.records import ListingRecord
from dealwatch.store import AggregateStore

def test_ingest_is_idempotent():
    store = AggregateStore()
    r = ListingRecord(price=100, title="oak chair", secondary_text="toronto")
    store.ingest([r])
    store.ingest([r])
    assert len(store) == 1

def test_ingest_sets_detected_at_and_returns_new_records():
    store = AggregateStore()
    added = store.ingest([ListingRecord(price=5, title="a"), None, ListingRecord(price=6, title="b")])
    assert [r.title for r in added] == ["a", "b"]
    assert all(r.detected_at is not None for r in store.records())

def test_composite_id_normalizes_text():
    a = ListingRecord(price=100.0, title="Oak  Chair", secondary_text=" Toronto ")
    b = ListingRecord(price=100, title="oak chair", secondary_text="toronto")
    assert a.id == b.id == "oak chair_100_toronto"

def test_external_id_wins_over_text():
    a = ListingRecord(price=100, title="oak chair", external_id="42")
    b = ListingRecord(price=90, title="oak chair (reduced)", external_id="42")
    store = AggregateStore()
    store.ingest([a, b])
    assert len(store) == 1
    assert store.get("42").price == 100

def test_clear_resets_every_element():
    sink = MagicMock()
    store = AggregateStore(sink=sink)
    elements = [object(), object(), object()]
    store.ingest([ListingRecord(price=i + 1, title=f"item {i}", element=e) for i, e in enumerate(elements)])
    store.clear()
    assert len(store) == 0
    assert [c.args[0] for c in sink.reset.call_args_list] == elements

def test_counter_updates():
    counts = []
    store = AggregateStore(on_change=counts.append)
    store.ingest([ListingRecord(price=1, title="a")])
    store.ingest([ListingRecord(price=1, title="a")])
    store.clear()
    assert counts == [1, 1, 0]

def test_set_keyword_does_not_clear():
    store = AggregateStore()
    store.ingest([ListingRecord(price=1, title="a")])
    store.set_keyword_context("  Bike ")
    assert store.keyword == "bike"
    assert len(store) == 1

def test_prices_above_floor():
    store = AggregateStore()
    store.ingest([ListingRecord(price=p, title=str(p)) for p in (10, 50, 60)])
    assert store.prices(50) == [60]
