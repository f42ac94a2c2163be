# dealwatch/pricing.py
"""Price anomaly scoring.

Each listing is compared against the robust centre of the current aggregate.
The formula depends on the listing's category: plain robust z-scores for
general goods, mileage/age normalized prices for vehicles, a retail price
table for electronics and location-aware savings for property.
"""
import re
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from .categories import classify
from .config import AnalyzerConfig
from .records import AnalysisResult, Category, ListingRecord, Tier, normalize_text
from .stats import mad, median, robust_z

KM_PER_MILE = 1.609344
MILEAGE_DOUBLING_KM = 130000
UNKNOWN_MILEAGE_FACTOR = 1.5
AGE_STEP = 0.05
MAX_AGE_YEARS = 20

SAVINGS_LIMIT = 999

# expected retail price (USD) of recognized models; longest key wins
RETAIL_PRICES = {
    "iphone 16 pro max": 1199, "iphone 16 pro": 999, "iphone 16": 799,
    "iphone 15 pro max": 1199, "iphone 15 pro": 999, "iphone 15": 799,
    "iphone 14 pro": 999, "iphone 14": 699, "iphone 13": 599, "iphone 12": 499,
    "iphone 11": 399,
    "galaxy s24 ultra": 1299, "galaxy s24": 799, "galaxy s23": 699, "pixel 8 pro": 999,
    "pixel 8": 699,
    "ps5": 499, "playstation 5": 499, "ps4": 299, "playstation 4": 299,
    "xbox series x": 499, "xbox series s": 299, "xbox one": 249,
    "nintendo switch oled": 349, "nintendo switch": 299, "steam deck": 399,
    "macbook pro": 1599, "macbook air": 999, "ipad pro": 999, "ipad air": 599,
    "ipad": 349, "airpods pro": 249, "airpods": 129, "apple watch": 399,
    "rtx 4090": 1599, "rtx 4080": 999, "rtx 4070": 599, "rtx 3080": 699,
}
_RETAIL_KEYS = sorted(RETAIL_PRICES, key=len, reverse=True)

# (minimum savings percent, score) checked in order; the final entry catches the rest
ELECTRONICS_SAVINGS_TIERS = ((40, 35), (25, 25), (10, 12), (0, 3))
ELECTRONICS_PENALTY_TIERS = ((-25, -30), (-10, -15))
ELECTRONICS_DEFAULT = -5

NEW_KEYWORDS = ("brand new", "sealed", "unopened", "new in box", "nib", "new")
# "like new" describes a used item
_LIKE_NEW = re.compile(r"\blike[\s-]+new\b")
DAMAGED_KEYWORDS = ("broken", "damaged", "cracked", "for parts", "not working", "water damage")
NEW_BONUS = 10
DAMAGED_PENALTY = -20
REFURBISHED_BONUS = 5
REFURBISHED_MEDIAN_RATIO = 0.7

PREMIUM_LOCATION_KEYWORDS = ("downtown", "waterfront", "ocean view", "lake view",
                             "city centre", "city center", "beachfront", "penthouse")
PREMIUM_LOCATION_BONUS = 10
FURNISHED_BONUS = 5
UNFURNISHED_PENALTY = -5

VEHICLE_SCORE_WEIGHT = 0.75
PROPERTY_SCORE_WEIGHT = 0.7

_DISTANCE = re.compile(
    r"(\d[\d,]*(?:\.\d+)?)\s*(k)?\s*(km|kms|kilometers|kilometres|mi|miles)\b")
_YEAR = re.compile(r"\b(19[5-9]\d|20\d\d)\b")


def parse_distance_km(text: Optional[str]) -> Optional[float]:
    """'85,000 km', '120k miles', '75K mi' -> kilometres, or None."""
    m = _DISTANCE.search(normalize_text(text))
    if not m:
        return None
    value = float(m.group(1).replace(",", ""))
    if m.group(2):
        value *= 1000
    if m.group(3).startswith("mi"):
        value *= KM_PER_MILE
    return value


def parse_model_year(title: Optional[str], current_year: int) -> Optional[int]:
    for m in _YEAR.finditer(title or ""):
        year = int(m.group(1))
        if year <= current_year + 1:
            return year
    return None


def has_word(text: str, keyword: str) -> bool:
    return re.search(r"(?<!\w)%s(?!\w)" % re.escape(keyword), text) is not None


def vehicle_multiplier(record: ListingRecord, current_year: int, cap: float) -> float:
    """Price multiplier for mileage and age; older, higher-mileage cars count as dearer."""
    km = parse_distance_km(f"{record.title} {record.secondary_text}")
    mileage_factor = 2 ** (km / MILEAGE_DOUBLING_KM) if km is not None else UNKNOWN_MILEAGE_FACTOR
    age_factor = 1.0
    year = parse_model_year(record.title, current_year)
    if year is not None:
        age = min(max(current_year - year, 0), MAX_AGE_YEARS)
        age_factor = 1 + AGE_STEP * age
    return min(mileage_factor * age_factor, cap)


def savings_percent(price: float, reference: float) -> float:
    if reference <= 0:
        return 0.0
    value = (reference - price) / reference * 100
    return max(-SAVINGS_LIMIT, min(SAVINGS_LIMIT, value))


def tier_for_score(score: float) -> Tier:
    if score >= 25:
        return Tier.EXCELLENT
    if score >= 10:
        return Tier.GOOD
    if score >= 0:
        return Tier.FAIR
    if score <= -20:
        return Tier.OVERPRICED
    if score <= -10:
        return Tier.HIGH_PRICE
    return Tier.NEUTRAL


def rationale_for(tier: Tier, savings: float, category: Category) -> str:
    pct = round(abs(savings))
    if tier is Tier.ANOMALOUS_DEAL:
        return f"Too good to be true: {pct}% below typical {category.value} price. Possibly mispriced or a scam"
    if tier is Tier.EXCELLENT:
        return f"Excellent deal! {pct}% below typical price"
    if tier is Tier.GOOD:
        return f"Good deal! {pct}% below typical price"
    if tier is Tier.FAIR:
        return "Fair price"
    if tier is Tier.OVERPRICED:
        return f"Potentially overpriced ({pct}% above typical price)"
    if tier is Tier.HIGH_PRICE:
        return f"Price on the high side ({pct}% above typical price)"
    return "Slightly above typical price"


class _PassStats:
    """Statistics of one analysis pass; recomputed on every pass."""

    def __init__(self, sample: Sequence[ListingRecord], config: AnalyzerConfig, current_year: int):
        self.config = config
        self.current_year = current_year
        floor = config.min_price_for_analysis
        self.listings = [r for r in sample if r.price > floor]
        self.prices = [r.price for r in self.listings]
        self.median = median(self.prices)
        self.mad = mad(self.prices, self.median)
        self._vehicle_median = None

    @property
    def sufficient(self) -> bool:
        return len(self.prices) >= self.config.min_sample_size

    def vehicle_multiplier(self, record: ListingRecord) -> float:
        return vehicle_multiplier(record, self.current_year, self.config.vehicle_multiplier_cap)

    @property
    def vehicle_median(self) -> float:
        if self._vehicle_median is None:
            self._vehicle_median = median(r.price * self.vehicle_multiplier(r) for r in self.listings)
        return self._vehicle_median


class PriceAnomalyEngine:

    def __init__(self, config: Optional[AnalyzerConfig] = None, current_year: Optional[int] = None):
        self.config = config or AnalyzerConfig()
        self.current_year = current_year

    def _year(self) -> int:
        return self.current_year or date.today().year

    def analyze(self, listing: ListingRecord, sample: Sequence[ListingRecord]) -> Optional[AnalysisResult]:
        stats = _PassStats(sample, self.config, self._year())
        if not stats.sufficient:
            return None
        return self._score(listing, stats)

    def analyze_all(self, listings: Iterable[ListingRecord],
                    sample: Sequence[ListingRecord]) -> Dict[str, AnalysisResult]:
        stats = _PassStats(sample, self.config, self._year())
        if not stats.sufficient:
            return {}
        results = {}
        for listing in listings:
            result = self._score(listing, stats)
            if result is not None:
                results[listing.id] = result
        return results

    def _score(self, listing: ListingRecord, stats: _PassStats) -> Optional[AnalysisResult]:
        if listing.price <= self.config.min_price_for_analysis:
            return None
        category = classify(listing.title)
        if category is Category.VEHICLE:
            score, savings, reference = self._vehicle(listing, stats)
        elif category is Category.ELECTRONICS:
            score, savings, reference = self._electronics(listing, stats)
        elif category is Category.PROPERTY:
            score, savings, reference = self._property(listing, stats)
        else:
            score, savings, reference = self._general(listing, stats)

        if savings >= self._too_good_threshold(category):
            tier = Tier.ANOMALOUS_DEAL
        else:
            tier = tier_for_score(score)
        return AnalysisResult(
            score=round(score, 2),
            rationale=rationale_for(tier, savings, category),
            category=category,
            savings_percent=round(savings, 2),
            tier=tier,
            reference_price=round(reference, 2),
        )

    def _too_good_threshold(self, category: Category) -> float:
        thresholds = self.config.category_thresholds
        return {
            Category.VEHICLE: thresholds.car,
            Category.ELECTRONICS: thresholds.electronics,
            Category.PROPERTY: thresholds.property,
            Category.GENERAL: thresholds.general,
        }[category]

    def _general(self, listing, stats):
        z = robust_z(listing.price, stats.median, stats.mad)
        if z <= -self.config.robust_z_good:
            score = min(max(15 * -z, 10), 60)
        elif z >= self.config.robust_z_bad:
            score = -min(max(15 * z, 20), 60)
        else:
            score = min(5 * max(0.0, -z), 9)
        return score, savings_percent(listing.price, stats.median), stats.median

    def _vehicle(self, listing, stats):
        normalized = listing.price * stats.vehicle_multiplier(listing)
        reference = stats.vehicle_median
        savings = savings_percent(normalized, reference)
        return savings * VEHICLE_SCORE_WEIGHT, savings, reference

    def _electronics(self, listing, stats):
        text = normalize_text(f"{listing.title} {listing.secondary_text}")
        reference = next((RETAIL_PRICES[k] for k in _RETAIL_KEYS if k in text), stats.median)
        savings = savings_percent(listing.price, reference)

        score = ELECTRONICS_DEFAULT
        for threshold, bonus in ELECTRONICS_SAVINGS_TIERS:
            if savings >= threshold:
                score = bonus
                break
        else:
            for threshold, penalty in ELECTRONICS_PENALTY_TIERS:
                if savings <= threshold:
                    score = penalty
                    break

        condition = _LIKE_NEW.sub(" ", text)
        if any(has_word(condition, kw) for kw in NEW_KEYWORDS):
            score += NEW_BONUS
        if any(has_word(text, kw) for kw in DAMAGED_KEYWORDS):
            score += DAMAGED_PENALTY
        if has_word(text, "refurbished") and listing.price < REFURBISHED_MEDIAN_RATIO * stats.median:
            score += REFURBISHED_BONUS
        return score, savings, reference

    def _property(self, listing, stats):
        text = normalize_text(f"{listing.title} {listing.secondary_text}")
        savings = savings_percent(listing.price, stats.median)
        score = savings * PROPERTY_SCORE_WEIGHT
        if any(kw in text for kw in PREMIUM_LOCATION_KEYWORDS):
            score += PREMIUM_LOCATION_BONUS
        if has_word(text, "unfurnished"):
            score += UNFURNISHED_PENALTY
        elif has_word(text, "furnished"):
            score += FURNISHED_BONUS
        return score, savings, stats.median


def sample_median(sample: Sequence[ListingRecord], config: AnalyzerConfig) -> Optional[float]:
    """Median of the price sample, or None when it is too small to trust."""
    prices: List[float] = [r.price for r in sample if r.price > config.min_price_for_analysis]
    if len(prices) < config.min_sample_size:
        return None
    return median(prices)
