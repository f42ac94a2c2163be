# dealwatch/services.py
from bs4 import BeautifulSoup
from sqlalchemy.orm import Session
from typing import Dict, Iterable, Optional
from . import crud
from .analyzer import ListingListAnalyzer
from .records import AnalysisResult, ListingRecord
from .utils import logger

def scan_html(analyzer: ListingListAnalyzer, html: str):
    """Parse an HTML snapshot of a results page and run one scan over it."""
    soup = BeautifulSoup(html, "html.parser")
    return analyzer.scan(soup)

def snapshot_payload(record: ListingRecord, keyword: str, analysis: Optional[AnalysisResult]) -> Dict:
    payload = {
        "listing_id": record.id,
        "keyword": keyword,
        "title": record.title,
        "price": float(record.price),
        "secondary_text": record.secondary_text,
        "detected_at": record.detected_at,
        "category": None,
        "tier": None,
        "score": None,
        "savings_percent": None,
    }
    if analysis is not None:
        payload.update({
            "category": analysis.category.value,
            "tier": analysis.tier.value,
            "score": analysis.score,
            "savings_percent": analysis.savings_percent,
        })
    return payload

def persist_listings(db: Session, records: Iterable[ListingRecord], keyword: str,
                     results: Dict[str, AnalysisResult]) -> int:
    count = 0
    for record in records:
        crud.upsert_listing(db, snapshot_payload(record, keyword, results.get(record.id)), commit=False)
        count += 1
    db.commit()
    logger.info("Persisted %d listings for keyword %r", count, keyword)
    return count
