# dealwatch/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

class ListingIn(BaseModel):
    price: float
    title: str
    secondary_text: str = ""
    external_id: Optional[str] = Field(None, max_length=255)

class AnalysisOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    score: float
    rationale: str
    category: str
    savings_percent: float
    tier: str
    reference_price: float

class ListingOut(BaseModel):
    id: str
    price: float
    title: str
    secondary_text: str
    detected_at: Optional[datetime]
    analysis: Optional[AnalysisOut] = None

class DecisionOut(BaseModel):
    id: str
    price: float
    title: str
    suspicious: bool
    analysis: Optional[AnalysisOut] = None

class ScanIn(BaseModel):
    html: str

class ScanOut(BaseModel):
    keyword: str
    total: int
    decisions: List[DecisionOut]

class IngestOut(BaseModel):
    added: int
    total: int

class KeywordIn(BaseModel):
    keyword: str

class KeywordOut(BaseModel):
    keyword: str
    cleared: bool

class AttributesIn(BaseModel):
    listing_type: str = Field("general", pattern="^(general|vehicle|property sale|property rental)$")
    date: str = ""
    description: str = ""
    condition: Optional[str] = None
    distance_driven: Optional[str] = None
    seller_join_year: Optional[int] = None
    seller_highly_rated: bool = False

class DescriptionIn(BaseModel):
    text: str

class RiskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    score: float
    conclusion: str
    message: str
    red_flags: List[str]
    concerning_keywords: List[str]
    updated: Optional[bool] = None

class SnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    listing_id: str
    keyword: Optional[str]
    title: Optional[str]
    price: Optional[float]
    secondary_text: Optional[str]
    category: Optional[str]
    tier: Optional[str]
    score: Optional[float]
    savings_percent: Optional[float]
    detected_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    last_seen_at: Optional[datetime]

class PersistOut(BaseModel):
    persisted: int
