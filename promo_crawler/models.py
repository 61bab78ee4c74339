# promo_crawler/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

UNKNOWN = "unknown"


@dataclass(frozen=True)
class PageOutcome:
    url: str
    count: Optional[int] = None
    snippet: Optional[str] = None
    error: Optional[str] = None
    source: Optional[str] = None  # fetch | render | slice

    @property
    def known(self) -> bool:
        return self.count is not None

    def as_dict(self) -> dict:
        d = {"url": self.url, "count": self.count if self.count is not None else UNKNOWN}
        if self.source:
            d["source"] = self.source
        if self.snippet:
            d["snippet"] = self.snippet
        if self.error:
            d["error"] = self.error
        return d


@dataclass
class CountrySummary:
    country: str
    date_pages_found: int = 0
    pages: List[PageOutcome] = field(default_factory=list)
    failures: List[dict] = field(default_factory=list)
    error: Optional[str] = None

    def as_dict(self) -> dict:
        d = {
            "datePlpsFound": self.date_pages_found,
            "pages": [p.as_dict() for p in self.pages],
        }
        if self.failures:
            d["failures"] = list(self.failures)
        if self.error:
            d["error"] = self.error
        return d


@dataclass
class BatchReport:
    timestamp: str
    countries: Dict[str, CountrySummary] = field(default_factory=dict)

    def outcomes(self) -> List[PageOutcome]:
        return [p for summary in self.countries.values() for p in summary.pages]

    def as_dict(self) -> dict:
        outcomes = self.outcomes()
        return {
            "timestamp": self.timestamp,
            "totalChecked": len(outcomes),
            "zeroPages": [p.url for p in outcomes if p.count == 0],
            "unknownPages": [p.url for p in outcomes if p.count is None and not p.error],
            "countries": {code: s.as_dict() for code, s in self.countries.items()},
        }
