# dealwatch/scam.py
"""Keyword and price-floor scam heuristics for listings in the aggregate."""
from typing import Optional

from .config import AnalyzerConfig
from .records import normalize_text

HIGH_VALUE_KEYWORDS = ("iphone", "macbook", "playstation", "ps5", "xbox", "ipad",
                       "nintendo switch", "rolex")
ABSOLUTE_PRICE_FLOOR = 50
MIN_RELATIVE_FLOOR = 30
RELATIVE_FLOOR_RATIO = 0.15


def price_floor(median: Optional[float]) -> float:
    if median:
        return max(MIN_RELATIVE_FLOOR, RELATIVE_FLOOR_RATIO * median)
    return ABSOLUTE_PRICE_FLOOR


class ScamSignalDetector:
    """Flags listings as suspicious; advisory only, independent of price scoring."""

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()

    def matched_keywords(self, title: str):
        text = normalize_text(title)
        return [kw for kw in self.config.scam_keywords if kw in text]

    def is_suspicious_price(self, price: float, title: str, median: Optional[float] = None) -> bool:
        text = normalize_text(title)
        if not any(kw in text for kw in HIGH_VALUE_KEYWORDS):
            return False
        return price < price_floor(median)

    def is_suspicious(self, price: float, title: str, median: Optional[float] = None) -> bool:
        return bool(self.matched_keywords(title)) or self.is_suspicious_price(price, title, median)
