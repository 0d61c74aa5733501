"""
Normalisation of acquisition output into DataPoint drafts.

Whatever shape the active strategy produced (item-level quotes or
category-level aggregates) ends up as a flat list of drafts with the same
fields as a DataPoint row minus id/company. Category aggregates are first
expanded into items, so there is a single path to persistence.

Normalisation never raises: missing or unrecognised fields fall back to
NEUTRAL sentiment, empty topics and placeholder provenance.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from .connectors.base import AcquisitionResult, FeedbackCategory, FeedbackItem
from ..models.data_point import Sentiment

TITLE_MAX_LEN = 50
ELLIPSIS = "..."
# Upper bound on rows generated from one category, whatever count upstream claims
CATEGORY_EXPANSION_CAP = 10

UNATTRIBUTED_SOURCE = "Web Search (unattributed)"
AGGREGATED_SOURCE = "AI Search Analysis"
ANONYMOUS_AUTHOR = "Anonymous"
AGGREGATED_AUTHOR = "Anonymous (AI aggregated)"

TYPE_TO_SENTIMENT = {
    "PRAISE": Sentiment.POSITIVE,
    "COMPLAINT": Sentiment.NEGATIVE,
}


@dataclass
class DataPointDraft:
    source: str
    original_url: str
    author: str
    title: Optional[str]
    content: str
    sentiment: Sentiment
    topics: List[str] = field(default_factory=list)
    # Only set when upstream supplied a usable date; otherwise the row gets its persistence time
    published_at: Optional[datetime] = None
    # False when sentiment is NEUTRAL only because upstream gave no recognised type
    typed: bool = True


def sentiment_for_type(item_type: Optional[str]) -> Sentiment:
    if not item_type:
        return Sentiment.NEUTRAL
    return TYPE_TO_SENTIMENT.get(str(item_type).strip().upper(), Sentiment.NEUTRAL)


def is_typed(item_type: Optional[str]) -> bool:
    return bool(item_type) and str(item_type).strip().upper() in TYPE_TO_SENTIMENT


def make_title(text: str) -> str:
    if len(text) <= TITLE_MAX_LEN:
        return text
    return text[:TITLE_MAX_LEN].rstrip() + ELLIPSIS


def parse_upstream_date(value: Optional[str]) -> Optional[datetime]:
    """
    Best-effort ISO date parsing. Returns naive UTC, or None for garbage and
    future dates.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if parsed > datetime.utcnow():
        return None
    return parsed


def expand_categories(categories: Iterable[FeedbackCategory]) -> List[FeedbackItem]:
    """
    Adapter from the category-level shape to the item-level shape.

    A category with estimated count N becomes min(N, CATEGORY_EXPANSION_CAP)
    items so that sentiment counts keep their proportional weight without
    letting an upstream over-estimate flood the table.
    """
    items: List[FeedbackItem] = []
    for cat in categories:
        try:
            count = int(cat.count)
        except (TypeError, ValueError, OverflowError):
            count = 0
        copies = min(max(count, 1), CATEGORY_EXPANSION_CAP)

        for i in range(copies):
            items.append(
                FeedbackItem(
                    text=cat.summary,
                    source=AGGREGATED_SOURCE,
                    type=cat.type,
                    date=cat.dates[i] if i < len(cat.dates) else None,
                    author=AGGREGATED_AUTHOR,
                    title=cat.category,
                    topics=[cat.category],
                )
            )
    return items


def _host(uri: Optional[str]) -> Optional[str]:
    if not uri:
        return None
    try:
        return urlparse(uri).hostname or None
    except ValueError:
        return None


def _item_to_draft(item: FeedbackItem, fallback_uri: Optional[str]) -> Optional[DataPointDraft]:
    content = (item.text or "").strip()
    if not content:
        return None

    return DataPointDraft(
        source=item.source or _host(fallback_uri) or UNATTRIBUTED_SOURCE,
        original_url=item.url or fallback_uri or UNATTRIBUTED_SOURCE,
        author=item.author or ANONYMOUS_AUTHOR,
        title=item.title or make_title(content),
        content=content,
        sentiment=sentiment_for_type(item.type),
        topics=[str(t) for t in item.topics if t],
        published_at=parse_upstream_date(item.date),
        typed=is_typed(item.type),
    )


def normalize(result: AcquisitionResult) -> List[DataPointDraft]:
    fallback_uri = result.sources[0].uri if result.sources else None

    drafts: List[DataPointDraft] = []
    for item in list(result.items) + expand_categories(result.categories):
        draft = _item_to_draft(item, fallback_uri)
        if draft is not None:
            drafts.append(draft)
    return drafts
