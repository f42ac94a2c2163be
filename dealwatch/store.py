# dealwatch/store.py
"""Session-scoped, deduplicated collection of every listing seen for a keyword."""
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .records import ListingRecord
from .utils import logger


class AggregateStore:
    """Maps listing id -> ListingRecord. Grows until `clear()`.

    `sink` receives a `reset` for every stored element on clear; `on_change`
    is called with the current size after every ingest and clear.
    """

    def __init__(self, sink=None, on_change: Optional[Callable[[int], None]] = None):
        self.sink = sink
        self.on_change = on_change
        self.keyword = ""
        self._records: Dict[str, ListingRecord] = {}

    def set_keyword_context(self, keyword: Optional[str]) -> None:
        self.keyword = (keyword or "").strip().lower()

    def ingest(self, candidates: Iterable[Optional[ListingRecord]]) -> List[ListingRecord]:
        added = []
        now = datetime.now(timezone.utc)
        for candidate in candidates:
            if candidate is None:
                continue
            key = candidate.id
            if key in self._records:
                continue
            record = replace(candidate, detected_at=now)
            self._records[key] = record
            added.append(record)
        if added:
            logger.info("Ingested %d new listings (%d total, keyword=%r)",
                        len(added), len(self._records), self.keyword)
        self._notify()
        return added

    def clear(self) -> None:
        records = list(self._records.values())
        self._records.clear()
        if self.sink is not None:
            for record in records:
                if record.element is not None:
                    self.sink.reset(record.element)
        logger.info("Cleared %d listings (keyword=%r)", len(records), self.keyword)
        self._notify()

    def _notify(self):
        if self.on_change is not None:
            self.on_change(len(self._records))

    def get(self, listing_id: str) -> Optional[ListingRecord]:
        return self._records.get(listing_id)

    def records(self) -> List[ListingRecord]:
        return list(self._records.values())

    def prices(self, floor: float = 0) -> List[float]:
        return [r.price for r in self._records.values() if r.price > floor]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, listing_id) -> bool:
        return listing_id in self._records

    def __iter__(self) -> Iterator[ListingRecord]:
        return iter(list(self._records.values()))
