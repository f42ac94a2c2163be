# dealwatch/analyzer.py
"""Scan orchestration for a search results page.

A scan reads the visible listings, keeps those matching the keyword context,
ingests them into the aggregate, scores them against the whole aggregate and
hands colour decisions to the highlight sink. The scam pass runs after the
price pass, so its colour wins.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .config import AnalyzerConfig
from .extract import extract_visible
from .highlight import GOOD_DEAL, OVERPRICED, POTENTIAL_SCAM
from .pricing import PriceAnomalyEngine, sample_median
from .records import AnalysisResult, ListingRecord, Tier
from .scam import ScamSignalDetector
from .scheduler import ChangeScheduler
from .store import AggregateStore
from .utils import logger

SCAM_TOOLTIP = "Potential scam - review carefully"

TIER_COLORS = {
    Tier.ANOMALOUS_DEAL: POTENTIAL_SCAM,
    Tier.EXCELLENT: GOOD_DEAL,
    Tier.GOOD: GOOD_DEAL,
    Tier.HIGH_PRICE: OVERPRICED,
    Tier.OVERPRICED: OVERPRICED,
}


@dataclass
class ListingDecision:
    record: ListingRecord
    analysis: Optional[AnalysisResult]
    suspicious: bool


class ListingListAnalyzer:

    def __init__(self, config: Optional[AnalyzerConfig] = None, sink=None,
                 extractor: Callable = extract_visible, on_count: Optional[Callable[[int], None]] = None,
                 loop=None, current_year: Optional[int] = None):
        self.config = config or AnalyzerConfig()
        self.sink = sink
        self.extractor = extractor
        self.store = AggregateStore(sink=sink, on_change=on_count)
        self.engine = PriceAnomalyEngine(self.config, current_year=current_year)
        self.detector = ScamSignalDetector(self.config)
        self.scheduler = ChangeScheduler(self.rescan, loop=loop)
        self.results: Dict[str, AnalysisResult] = {}
        self._document = None

    @property
    def keyword(self) -> str:
        return self.store.keyword

    def update_config(self, config: AnalyzerConfig) -> None:
        self.config = config
        self.engine.config = config
        self.detector.config = config
        if self.sink is not None and hasattr(self.sink, "colors"):
            self.sink.colors = config.highlight_colors
        logger.info("Configuration updated")

    def set_keyword(self, keyword: Optional[str]) -> bool:
        """Switch keyword context; the aggregate is cleared when the keyword changes."""
        new = (keyword or "").strip().lower()
        changed = new != self.store.keyword
        self.store.set_keyword_context(new)
        if changed:
            self.clear()
        return changed

    def clear(self) -> None:
        self.scheduler.disconnect()
        self.store.clear()
        self.results = {}

    def dispose(self) -> None:
        self.clear()
        self._document = None

    def observe(self, source, container, document=None) -> None:
        """Re-scan `document` (defaults to `container`) whenever `source` reports a burst."""
        self._document = document if document is not None else container
        self.scheduler.connect(source, container)

    def rescan(self):
        if self._document is None:
            return None
        return self.scan(self._document)

    def scan(self, document) -> Optional[List[ListingDecision]]:
        candidates = self.extractor(document)
        if candidates is None:
            logger.warning("Listing collection not found")
            return None
        visible = []
        for record in candidates:
            if self.keyword and self.keyword not in record.title.lower():
                self._reset(record)
                continue
            visible.append(record)
        self.store.ingest(visible)
        return self.analyze(visible)

    def ingest(self, records: List[ListingRecord]) -> List[ListingRecord]:
        return self.store.ingest(records)

    def analyze(self, visible: List[ListingRecord]) -> List[ListingDecision]:
        sample = self.store.records()
        self.results = self.engine.analyze_all(sample, sample)
        median = sample_median(sample, self.config)

        decisions = []
        for record in visible:
            analysis = self.results.get(record.id)
            if analysis is not None:
                self._apply_price(record, analysis)
            suspicious = self.detector.is_suspicious(record.price, record.title, median)
            decisions.append(ListingDecision(record, analysis, suspicious))

        for decision in decisions:
            if decision.suspicious and self.sink is not None:
                self.sink.apply(decision.record.element, POTENTIAL_SCAM, SCAM_TOOLTIP)

        flagged = sum(1 for d in decisions if d.suspicious)
        logger.info("Analyzed %d visible listings against %d in aggregate (%d scored, %d suspicious)",
                    len(visible), len(sample), len(self.results), flagged)
        return decisions

    def _apply_price(self, record, analysis):
        if self.sink is None:
            return
        token = TIER_COLORS.get(analysis.tier)
        if token is None:
            self.sink.reset(record.element)
        else:
            self.sink.apply(record.element, token, analysis.rationale)

    def _reset(self, record):
        if self.sink is not None and record.element is not None:
            self.sink.reset(record.element)
