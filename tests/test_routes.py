# tests/test_routes.py
import time
from concurrent.futures import ThreadPoolExecutor
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from dealwatch.config import AnalyzerConfig
from dealwatch.db import Base, get_db
from dealwatch.main import create_app
import dealwatch.models  # noqa: F401

RESULTS = ('<div aria-label="Collection of Marketplace items">'
           + "".join(f'<div data-virtualized="false"><span dir="auto">${p}</span>'
                     f'<span dir="auto">Oak chair {i}</span></div>'
                     for i, p in enumerate([100, 100, 100, 100, 100, 10]))
           + "</div>")

@pytest.fixture
def client():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app = create_app(AnalyzerConfig(min_price_for_analysis=0, robust_z_good=0.5))
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    engine.dispose()

def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}

def test_keyword_then_scan(client):
    assert client.put("/keyword", json={"keyword": "Chair"}).json() == {"keyword": "chair", "cleared": True}
    body = client.post("/scan", json={"html": RESULTS}).json()
    assert body["total"] == 6
    cheap = next(d for d in body["decisions"] if d["price"] == 10)
    assert cheap["analysis"]["tier"] == "anomalous_deal"
    assert cheap["analysis"]["savings_percent"] == pytest.approx(90)

def test_scan_without_collection(client):
    assert client.post("/scan", json={"html": "<p>login wall</p>"}).status_code == 404

def test_empty_keyword_rejected(client):
    assert client.put("/keyword", json={"keyword": "  "}).status_code == 422

def test_ingest_list_and_clear(client):
    records = [{"price": p, "title": f"lamp {i}"} for i, p in enumerate([40, 60, 60, 60, 60, 60])]
    assert client.post("/listings", json=records).json() == {"added": 6, "total": 6}
    assert client.post("/listings", json=records[:2]).json() == {"added": 0, "total": 6}
    listed = client.get("/listings").json()
    assert len(listed) == 6
    assert all(item["analysis"] is not None for item in listed)
    client.delete("/listings")
    assert client.get("/listings").json() == []

def test_config_hot_swap(client):
    resp = client.put("/config", json={"minPriceForAnalysis": 25, "robustZGood": 2.5})
    assert resp.status_code == 200
    assert client.get("/config").json()["min_price_for_analysis"] == 25
    assert client.put("/config", json={"robust_z_bad": -1}).status_code == 422

def test_persist_and_snapshots(client):
    client.put("/keyword", json={"keyword": "chair"})
    client.post("/scan", json={"html": RESULTS})
    assert client.post("/listings/persist").json() == {"persisted": 6}
    snaps = client.get("/snapshots", params={"max_price": 50}).json()
    assert len(snaps) == 1
    assert snaps[0]["tier"] == "anomalous_deal"
    assert client.delete(f"/snapshots/{snaps[0]['listing_id']}").status_code == 200
    assert client.delete(f"/snapshots/{snaps[0]['listing_id']}").status_code == 404

def test_risk_flow(client):
    assert client.get("/risk").status_code == 404
    attrs = {"listing_type": "general", "date": "2 days ago", "description": "urgent, cash app only",
             "seller_join_year": 2000, "seller_highly_rated": False}
    first = client.post("/risk", json=attrs).json()
    assert first["score"] == pytest.approx(0.35)
    assert first["conclusion"] == "caution"
    revealed = client.post("/risk/description", json={"text": "urgent, cash app only. negotiable"}).json()
    assert revealed["updated"] is True
    assert revealed["score"] == pytest.approx(0.35 * 0.75)
    assert client.get("/risk").json()["score"] == pytest.approx(0.35 * 0.75)

def test_risk_extract_unavailable(client):
    assert client.post("/risk/extract", json={"html": "<div></div>"}).status_code == 422

def test_snapshots_filter_by_tier(client):
    client.put("/keyword", json={"keyword": "chair"})
    client.post("/scan", json={"html": RESULTS})
    client.post("/listings/persist")
    snaps = client.get("/snapshots", params={"tier": "anomalous_deal"}).json()
    assert [s["price"] for s in snaps] == [10]
    assert client.get("/snapshots", params={"tier": "overpriced"}).json() == []

def test_concurrent_scans_run_one_at_a_time(monkeypatch):
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    monkeypatch.setattr("dealwatch.main.engine", engine)
    app = create_app(AnalyzerConfig(min_price_for_analysis=0, robust_z_good=0.5))
    store = app.state.analyzer.store
    original_ingest = store.ingest
    active, peak = [0], [0]

    def slow_ingest(records):
        active[0] += 1
        peak[0] = max(peak[0], active[0])
        try:
            time.sleep(0.05)
            return original_ingest(records)
        finally:
            active[0] -= 1

    monkeypatch.setattr(store, "ingest", slow_ingest)
    with TestClient(app) as client:
        client.put("/keyword", json={"keyword": "chair"})
        with ThreadPoolExecutor(max_workers=4) as pool:
            responses = list(pool.map(lambda _: client.post("/scan", json={"html": RESULTS}), range(4)))
        total = len(store)
    engine.dispose()
    assert [r.status_code for r in responses] == [200] * 4
    assert peak[0] == 1
    assert total == 6
