# tests/test_crud.py
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from dealwatch import crud
from dealwatch.db import Base
from dealwatch.records import AnalysisResult, Category, ListingRecord, Tier
from dealwatch.services import persist_listings, snapshot_payload
import dealwatch.models  # noqa: F401

@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()

def test_upsert_and_get(db):
    payload = {"listing_id": "test123", "title": "oak chair", "price": 100, "keyword": "chair"}
    crud.upsert_listing(db, payload)
    obj = crud.get_listing(db, "test123")
    assert obj is not None
    assert obj.title == "oak chair"

def test_upsert_is_idempotent_and_refreshes(db):
    crud.upsert_listing(db, {"listing_id": "x1", "title": "oak chair", "price": 100})
    crud.upsert_listing(db, {"listing_id": "x1", "title": "oak chair (reduced)", "price": 90})
    res = crud.list_listings(db)
    assert res["total"] == 1
    assert res["items"][0].title == "oak chair (reduced)"
    assert float(res["items"][0].price) == 90

def test_list_filters(db):
    for i, (price, category) in enumerate([(50, "general"), (500, "electronics"), (5000, "vehicle")]):
        crud.upsert_listing(db, {"listing_id": f"id{i}", "price": price, "category": category,
                                 "keyword": "stuff"})
    assert crud.list_listings(db, filters={"min_price": 100})["total"] == 2
    assert crud.list_listings(db, filters={"max_price": 100})["total"] == 1
    assert crud.list_listings(db, filters={"category": "vehicle"})["items"][0].listing_id == "id2"
    assert crud.list_listings(db, filters={"keyword": "other"})["total"] == 0

def test_delete(db):
    crud.upsert_listing(db, {"listing_id": "gone", "price": 1})
    assert crud.delete_listing(db, "gone") is True
    assert crud.delete_listing(db, "gone") is False

def test_persist_listings_with_analysis(db):
    records = [ListingRecord(price=100, title="oak chair", external_id="1"),
               ListingRecord(price=10, title="oak stool", external_id="2")]
    analysis = AnalysisResult(score=60, rationale="", category=Category.GENERAL,
                              savings_percent=90, tier=Tier.ANOMALOUS_DEAL, reference_price=100)
    assert persist_listings(db, records, "oak", {"2": analysis}) == 2
    assert crud.get_listing(db, "1").tier is None
    stored = crud.get_listing(db, "2")
    assert stored.tier == "anomalous_deal"
    assert stored.savings_percent == 90
    assert stored.keyword == "oak"

def test_snapshot_payload_without_analysis():
    payload = snapshot_payload(ListingRecord(price=5, title="lamp"), "lamp", None)
    assert payload["listing_id"] == "lamp_5_"
    assert payload["category"] is None
