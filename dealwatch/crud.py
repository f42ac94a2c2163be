# dealwatch/crud.py
"""CRUD helpers for persisted `Listing` snapshots, including an idempotent upsert."""
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy import and_, func
from .models import Listing
from sqlalchemy.orm import Session
from typing import Dict, Any

def _insert(db: Session):
    return pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert

def upsert_listing(db: Session, data: Dict[str, Any], commit: bool = True):
    table = Listing.__table__
    stmt = _insert(db)(table).values(**data)
    # copy all updatable columns from EXCLUDED, but keep the first detection time
    excluded = {c.name: stmt.excluded[c.name] for c in table.columns
                if c.name in data and c.name not in ("id", "listing_id", "created_at", "detected_at")}
    excluded["updated_at"] = func.now()
    excluded["last_seen_at"] = func.now()
    stmt = stmt.on_conflict_do_update(index_elements=['listing_id'], set_=excluded)
    db.execute(stmt)
    if commit:
        db.commit()

def get_listing(db: Session, listing_id: str):
    return db.query(Listing).filter(Listing.listing_id == listing_id).first()

def list_listings(db: Session, skip: int = 0, limit: int = 50, filters: Dict = None):
    q = db.query(Listing)
    if filters:
        conds = []
        if filters.get("min_price") is not None:
            conds.append(Listing.price >= filters["min_price"])
        if filters.get("max_price") is not None:
            conds.append(Listing.price <= filters["max_price"])
        if filters.get("keyword"):
            conds.append(Listing.keyword == filters["keyword"])
        if filters.get("category"):
            conds.append(Listing.category == filters["category"])
        if filters.get("tier"):
            conds.append(Listing.tier == filters["tier"])
        if conds:
            q = q.filter(and_(*conds))
    total = q.count()
    items = q.order_by(Listing.id).offset(skip).limit(limit).all()
    return {"total": total, "items": items}

def delete_listing(db: Session, listing_id: str):
    obj = db.query(Listing).filter(Listing.listing_id == listing_id).first()
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    return True
