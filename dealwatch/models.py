# dealwatch/models.py
"""SQLAlchemy model for persisted listing snapshots."""
from sqlalchemy import Column, Integer, Text, Numeric, Float, TIMESTAMP, func, Index
from .db import Base

class Listing(Base):
    __tablename__ = "listings"
    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(Text, nullable=False, unique=True, index=True)
    keyword = Column(Text, index=True)
    title = Column(Text)
    price = Column(Numeric)
    secondary_text = Column(Text)
    category = Column(Text)
    tier = Column(Text)
    score = Column(Float)
    savings_percent = Column(Float)
    detected_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())
    last_seen_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

Index("idx_listings_price", Listing.price)
Index("idx_listings_category", Listing.category)
