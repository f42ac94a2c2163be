# dealwatch/api/routes.py
from dataclasses import asdict
from bs4 import BeautifulSoup
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional
from .. import crud, schemas
from ..analyzer import ListingListAnalyzer
from ..config import AnalyzerConfig
from ..db import get_db
from ..extract import UNAVAILABLE, extract_single
from ..records import ListingRecord, SingleListingAttributes
from ..risk import SingleListingRiskProfile
from ..services import persist_listings, scan_html

router = APIRouter()

# handlers touching the shared analyzer or risk profile are coroutines so they
# run one at a time on the event loop

async def get_analyzer(request: Request) -> ListingListAnalyzer:
    return request.app.state.analyzer

async def get_risk_profile(request: Request) -> SingleListingRiskProfile:
    return request.app.state.risk_profile

def _analysis_out(analysis):
    if analysis is None:
        return None
    data = asdict(analysis)
    data["category"] = analysis.category.value
    data["tier"] = analysis.tier.value
    return schemas.AnalysisOut(**data)

def _risk_out(report, updated=None):
    return schemas.RiskOut(score=report.score, conclusion=report.conclusion.value, message=report.message,
                           red_flags=report.red_flags, concerning_keywords=report.concerning_keywords,
                           updated=updated)

@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/config")
async def get_config(analyzer: ListingListAnalyzer = Depends(get_analyzer)):
    return analyzer.config.model_dump()

@router.put("/config")
async def put_config(payload: AnalyzerConfig, analyzer: ListingListAnalyzer = Depends(get_analyzer)):
    analyzer.update_config(payload)
    return analyzer.config.model_dump()

@router.put("/keyword", response_model=schemas.KeywordOut)
async def put_keyword(payload: schemas.KeywordIn, analyzer: ListingListAnalyzer = Depends(get_analyzer)):
    if not payload.keyword.strip():
        raise HTTPException(status_code=422, detail="No search keyword given")
    cleared = analyzer.set_keyword(payload.keyword)
    return {"keyword": analyzer.keyword, "cleared": cleared}

@router.post("/scan", response_model=schemas.ScanOut)
async def scan(payload: schemas.ScanIn, analyzer: ListingListAnalyzer = Depends(get_analyzer)):
    decisions = scan_html(analyzer, payload.html)
    if decisions is None:
        raise HTTPException(status_code=404, detail="Listing collection not found")
    return {
        "keyword": analyzer.keyword,
        "total": len(analyzer.store),
        "decisions": [
            {"id": d.record.id, "price": d.record.price, "title": d.record.title,
             "suspicious": d.suspicious, "analysis": _analysis_out(d.analysis)}
            for d in decisions
        ],
    }

@router.get("/listings", response_model=List[schemas.ListingOut])
async def listings(analyzer: ListingListAnalyzer = Depends(get_analyzer)):
    return [
        {"id": r.id, "price": r.price, "title": r.title, "secondary_text": r.secondary_text,
         "detected_at": r.detected_at, "analysis": _analysis_out(analyzer.results.get(r.id))}
        for r in analyzer.store.records()
    ]

@router.post("/listings", response_model=schemas.IngestOut)
async def ingest_listings(payload: List[schemas.ListingIn], analyzer: ListingListAnalyzer = Depends(get_analyzer)):
    records = [ListingRecord(**item.model_dump()) for item in payload]
    added = analyzer.ingest(records)
    analyzer.analyze([])
    return {"added": len(added), "total": len(analyzer.store)}

@router.delete("/listings")
async def clear_listings(analyzer: ListingListAnalyzer = Depends(get_analyzer)):
    analyzer.clear()
    return {"status": "cleared"}

@router.post("/listings/persist", response_model=schemas.PersistOut)
async def persist(analyzer: ListingListAnalyzer = Depends(get_analyzer), db: Session = Depends(get_db)):
    count = persist_listings(db, analyzer.store.records(), analyzer.keyword, analyzer.results)
    return {"persisted": count}

@router.get("/snapshots", response_model=List[schemas.SnapshotOut])
def snapshots(
    skip: int = 0,
    limit: int = 20,
    min_price: float | None = Query(None),
    max_price: float | None = Query(None),
    keyword: str | None = Query(None),
    category: str | None = Query(None),
    tier: str | None = Query(None),
    db: Session = Depends(get_db)
):
    filters = {"min_price": min_price, "max_price": max_price, "keyword": keyword, "category": category,
               "tier": tier}
    res = crud.list_listings(db, skip=skip, limit=limit, filters=filters)
    return res["items"]

@router.delete("/snapshots/{listing_id}")
def delete_snapshot(listing_id: str, db: Session = Depends(get_db)):
    ok = crud.delete_listing(db, listing_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Listing not found")
    return {"status": "deleted"}

@router.get("/risk", response_model=schemas.RiskOut)
async def get_risk(profile: SingleListingRiskProfile = Depends(get_risk_profile)):
    if profile.report is None:
        raise HTTPException(status_code=404, detail="No listing analyzed yet")
    return _risk_out(profile.report)

@router.post("/risk", response_model=schemas.RiskOut)
async def post_risk(payload: schemas.AttributesIn, profile: SingleListingRiskProfile = Depends(get_risk_profile)):
    report = profile.ingest_attributes(SingleListingAttributes(**payload.model_dump()))
    return _risk_out(report)

@router.post("/risk/extract", response_model=schemas.RiskOut)
async def extract_risk(payload: schemas.ScanIn, profile: SingleListingRiskProfile = Depends(get_risk_profile)):
    attrs = extract_single(BeautifulSoup(payload.html, "html.parser"))
    if attrs == UNAVAILABLE:
        raise HTTPException(status_code=422, detail="Unable to extract listing data")
    return _risk_out(profile.ingest_attributes(attrs))

@router.post("/risk/description", response_model=schemas.RiskOut)
async def reveal_description(payload: schemas.DescriptionIn,
                       profile: SingleListingRiskProfile = Depends(get_risk_profile)):
    if profile.report is None:
        raise HTTPException(status_code=404, detail="No listing analyzed yet")
    updated = profile.on_description_revealed(payload.text)
    return _risk_out(profile.report, updated=updated)
