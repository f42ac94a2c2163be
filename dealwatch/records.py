# dealwatch/records.py
"""Core value types shared by the store, the analyzers and the extractors."""
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

_WS = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    return _WS.sub(" ", (text or "").strip().lower())


class Category(str, Enum):
    VEHICLE = "vehicle"
    ELECTRONICS = "electronics"
    PROPERTY = "property"
    GENERAL = "general"


class Tier(str, Enum):
    ANOMALOUS_DEAL = "anomalous_deal"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEUTRAL = "neutral"
    HIGH_PRICE = "high_price"
    OVERPRICED = "overpriced"

    @property
    def is_good_deal(self) -> bool:
        return self in (Tier.ANOMALOUS_DEAL, Tier.EXCELLENT, Tier.GOOD)


@dataclass(frozen=True)
class ListingRecord:
    price: float
    title: str
    secondary_text: str = ""
    external_id: Optional[str] = None
    detected_at: Optional[datetime] = None
    # opaque handle for the highlight sink; never part of identity
    element: Any = field(default=None, compare=False, repr=False)

    @property
    def id(self) -> str:
        if self.external_id:
            return self.external_id
        price = int(self.price) if float(self.price).is_integer() else self.price
        return f"{normalize_text(self.title)}_{price}_{normalize_text(self.secondary_text)}"


@dataclass(frozen=True)
class AnalysisResult:
    score: float
    rationale: str
    category: Category
    savings_percent: float
    tier: Tier
    reference_price: float


@dataclass(frozen=True)
class SingleListingAttributes:
    listing_type: str
    date: str
    description: str
    condition: Optional[str] = None
    distance_driven: Optional[str] = None
    seller_join_year: Optional[int] = None
    seller_highly_rated: bool = False


class Conclusion(str, Enum):
    LIKELY_SAFE = "likely safe"
    CAUTION = "caution"
    HIGH_RISK = "high risk"


@dataclass(frozen=True)
class RiskReport:
    score: float
    conclusion: Conclusion
    message: str
    red_flags: List[str] = field(default_factory=list)
    concerning_keywords: List[str] = field(default_factory=list)
