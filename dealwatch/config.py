# dealwatch/config.py
"""Analyzer configuration.

All recognized options carry defaults and are validated at construction. A new
`AnalyzerConfig` can be swapped into a running analyzer between passes.
"""
import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

load_dotenv()

DEFAULT_SCAM_KEYWORDS = ["urgent", "must sell", "cash only", "no returns"]


class CategoryThresholds(BaseModel):
    """Savings percent above which a listing is 'too good to be true'."""
    model_config = ConfigDict(frozen=True)

    car: float = Field(50.0, gt=0)
    electronics: float = Field(55.0, gt=0)
    property: float = Field(50.0, gt=0)
    general: float = Field(66.0, gt=0)


class HighlightColors(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    good_deal: str = Field("rgba(0, 255, 0, 0.2)", alias="goodDeal")
    overpriced: str = Field("rgba(255, 255, 0, 0.2)")
    potential_scam: str = Field("rgba(255, 0, 0, 0.2)", alias="potentialScam")


class AnalyzerConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min_price_for_analysis: float = Field(50.0, ge=0, alias="minPriceForAnalysis")
    robust_z_good: float = Field(1.8, gt=0, alias="robustZGood")
    robust_z_bad: float = Field(1.8, gt=0, alias="robustZBad")
    scam_keywords: List[str] = Field(default_factory=lambda: list(DEFAULT_SCAM_KEYWORDS),
                                     alias="scamKeywords")
    category_thresholds: CategoryThresholds = Field(default_factory=CategoryThresholds,
                                                    alias="categoryThresholds")
    min_sample_size: int = Field(5, ge=1, alias="minSampleSize")
    vehicle_multiplier_cap: float = Field(4.0, ge=1, alias="vehicleMultiplierCap")
    highlight_colors: HighlightColors = Field(default_factory=HighlightColors,
                                              alias="highlightColors")

    @field_validator("scam_keywords")
    @classmethod
    def _normalize_keywords(cls, v):
        # matching is done on lower-cased titles
        return [kw.strip().lower() for kw in v if kw and kw.strip()]


def load_config() -> AnalyzerConfig:
    """Build the configuration from environment variables (and .env)."""
    values = {}
    if os.getenv("DEALWATCH_MIN_PRICE"):
        values["min_price_for_analysis"] = float(os.environ["DEALWATCH_MIN_PRICE"])
    if os.getenv("DEALWATCH_Z_GOOD"):
        values["robust_z_good"] = float(os.environ["DEALWATCH_Z_GOOD"])
    if os.getenv("DEALWATCH_Z_BAD"):
        values["robust_z_bad"] = float(os.environ["DEALWATCH_Z_BAD"])
    if os.getenv("DEALWATCH_SCAM_KEYWORDS"):
        values["scam_keywords"] = os.environ["DEALWATCH_SCAM_KEYWORDS"].split(",")
    if os.getenv("DEALWATCH_MIN_SAMPLE"):
        values["min_sample_size"] = int(os.environ["DEALWATCH_MIN_SAMPLE"])
    return AnalyzerConfig(**values)
