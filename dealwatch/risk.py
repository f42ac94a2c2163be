# dealwatch/risk.py
"""Risk profile of a single listing detail page.

The profile holds an immutable attribute snapshot. Every change (a new
snapshot, or a longer description revealed by "See more") replaces the
snapshot and recomputes the whole report from it, so a report can always be
reproduced from the attributes alone.
"""
import re
from dataclasses import replace
from datetime import date
from typing import Callable, List, Optional

from .pricing import parse_distance_km
from .records import Conclusion, RiskReport, SingleListingAttributes
from .utils import logger

UNRATED_SELLER_PENALTY = 0.15
RECENCY_WEIGHT = 0.075
MAX_RECENCY_INDEX = 4

TIER1_KEYWORDS = ("act fast", "act now", "urgent", "limited time offer", "cash app", "cashapp",
                  "no viewing", "bitcoin", "ethereum", "crypto", "pay with gift card")
TIER2_KEYWORDS = ("paypal", "or best offer", "obo", "hold it", "gift card", "refurbished")
TIER1_WEIGHT = 0.10
TIER2_WEIGHT = 0.05
PRESSURE_KEYWORDS = ("or best offer", "obo")

HIGH_MILEAGE_KM = 200000
NEGOTIABLE_DAMPING = 0.75

SAFE_LIMIT = 0.2
CAUTION_LIMIT = 0.4

MESSAGES = {
    Conclusion.LIKELY_SAFE: "Most likely safe.",
    Conclusion.CAUTION: "Scam possible, proceed with caution.",
    Conclusion.HIGH_RISK: "Scam likely. Use extreme caution or find a different listing.",
}

FLAG_UNRATED = "Non-reputable seller"
FLAG_NEW_ACCOUNT = "Brand new account"
FLAG_PRESSURE = "You will likely be pressured to pay more than listed price."
FLAG_HIGH_MILEAGE = "High mileage. Poor resale value"
FLAG_STALE = "Seller either rarely checks in, or no one wants this for a reason."

_LISTED_AGE = re.compile(r"(\d+|an?)\s+(minute|hour|day|week|month|year)s?")


def conclude(score: float) -> Conclusion:
    if score <= SAFE_LIMIT:
        return Conclusion.LIKELY_SAFE
    if score <= CAUTION_LIMIT:
        return Conclusion.CAUTION
    return Conclusion.HIGH_RISK


def listed_too_long(listed: Optional[str]) -> bool:
    """'3 weeks ago', 'over a year ago', 'listed 2 months ago' -> True."""
    m = _LISTED_AGE.search((listed or "").lower())
    if not m:
        return False
    amount = 1 if m.group(1) in ("a", "an") else int(m.group(1))
    unit = m.group(2)
    return unit in ("month", "year") or (unit == "week" and amount > 2)


def _has_keyword(text, keyword):
    return re.search(r"(?<!\w)%s(?!\w)" % re.escape(keyword), text) is not None


def assess(attrs: SingleListingAttributes, current_year: int) -> RiskReport:
    score = 0.0
    red_flags: List[str] = []
    keywords: List[str] = []

    if not attrs.seller_highly_rated:
        score += UNRATED_SELLER_PENALTY
        red_flags.append(FLAG_UNRATED)

    if attrs.seller_join_year:
        # 1 when the seller joined last year, 4 when they joined this year
        recency = max(attrs.seller_join_year - current_year + 2, 0) ** 2
        recency = min(recency, MAX_RECENCY_INDEX)
        score += RECENCY_WEIGHT * recency
        if recency == MAX_RECENCY_INDEX:
            red_flags.append(FLAG_NEW_ACCOUNT)

    description = (attrs.description or "").lower()
    for kw in TIER1_KEYWORDS:
        if _has_keyword(description, kw):
            score += TIER1_WEIGHT
            keywords.append(kw)
    for kw in TIER2_KEYWORDS:
        if _has_keyword(description, kw):
            score += TIER2_WEIGHT
            keywords.append(kw)
    if any(kw in keywords for kw in PRESSURE_KEYWORDS):
        red_flags.append(FLAG_PRESSURE)

    if attrs.listing_type == "vehicle":
        km = parse_distance_km(attrs.distance_driven)
        if km is not None and km > HIGH_MILEAGE_KM:
            red_flags.append(FLAG_HIGH_MILEAGE)

    if listed_too_long(attrs.date):
        red_flags.append(FLAG_STALE)

    if "negotiable" in description:
        score *= NEGOTIABLE_DAMPING

    conclusion = conclude(score)
    return RiskReport(score=score, conclusion=conclusion, message=MESSAGES[conclusion],
                      red_flags=red_flags, concerning_keywords=keywords)


class SingleListingRiskProfile:

    def __init__(self, current_year: Optional[int] = None):
        self.current_year = current_year
        self.attributes: Optional[SingleListingAttributes] = None
        self.report: Optional[RiskReport] = None
        self._unsubscribe = None

    def ingest_attributes(self, attrs: SingleListingAttributes) -> RiskReport:
        self.attributes = attrs
        self.report = assess(attrs, self.current_year or date.today().year)
        logger.info("Risk score %.2f (%s) for %s listing",
                    self.report.score, self.report.conclusion.value, attrs.listing_type)
        return self.report

    def on_description_revealed(self, text: str) -> bool:
        """Take a longer description and recompute; shorter or equal text is ignored."""
        if self.attributes is None or text is None:
            return False
        if len(text) <= len(self.attributes.description or ""):
            return False
        self.ingest_attributes(replace(self.attributes, description=text))
        return True

    def watch_description(self, subscribe: Callable[[Callable[[str], None]], Callable[[], None]]):
        """Attach a description source; `subscribe(callback)` returns an unsubscribe function."""
        self._disconnect()
        self._unsubscribe = subscribe(self.on_description_revealed)

    def _disconnect(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def dispose(self):
        self._disconnect()
        self.attributes = None
        self.report = None

    @property
    def score(self) -> float:
        return self.report.score if self.report else 0.0

    @property
    def conclusion(self) -> Optional[Conclusion]:
        return self.report.conclusion if self.report else None

    @property
    def red_flags(self) -> List[str]:
        return list(self.report.red_flags) if self.report else []
