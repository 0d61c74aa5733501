from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional


# Human-readable period labels passed to acquisition channels.
PERIOD_LABELS = {
    "all_time": "all time",
    "last_6_months": "the last 6 months",
    "last_30_days": "the last 30 days",
    "last_7_days": "the last week",
}
DEFAULT_PERIOD = "last_30_days"


def period_label(period: str | None) -> str:
    return PERIOD_LABELS.get(period or "", PERIOD_LABELS[DEFAULT_PERIOD])


@dataclass
class FeedbackItem:
    """
    Item-level feedback: one quote from one person.

    type is "COMPLAINT", "PRAISE" or None when the channel cannot classify
    (e.g. raw search snippets).
    """

    text: str
    source: Optional[str] = None
    type: Optional[str] = None
    date: Optional[str] = None
    url: Optional[str] = None
    author: Optional[str] = None
    # Set only by the category adapter
    title: Optional[str] = None
    topics: List[str] = field(default_factory=list)


@dataclass
class FeedbackCategory:
    """
    Category-level feedback: an aggregated theme with an estimated count.
    """

    category: str
    count: int
    summary: str
    type: Optional[str] = None
    dates: List[str] = field(default_factory=list)


@dataclass
class GroundingSource:
    uri: str
    title: str


@dataclass
class AcquisitionResult:
    items: List[FeedbackItem] = field(default_factory=list)
    categories: List[FeedbackCategory] = field(default_factory=list)
    overall_sentiment: str = "NEUTRAL"
    sources: List[GroundingSource] = field(default_factory=list)
    analysis: Optional[str] = None
    suggestion: Optional[str] = None

    @classmethod
    def empty(cls) -> "AcquisitionResult":
        return cls()


def dedupe_sources(sources: Iterable[GroundingSource]) -> List[GroundingSource]:
    """
    Deduplicate by URI, keeping the first-seen title and order.
    """
    seen: dict[str, GroundingSource] = {}
    for src in sources:
        if not src.uri or src.uri in seen:
            continue
        seen[src.uri] = src
    return list(seen.values())


class AcquisitionStrategy(ABC):
    name: str

    @abstractmethod
    async def acquire(self, company_name: str, period: str = DEFAULT_PERIOD) -> AcquisitionResult:
        ...
