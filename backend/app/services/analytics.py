"""
Read-only dashboard aggregates over persisted DataPoints.

All queries are scoped to one company and, where given, the window
[now - period_days, now]. An empty window is a valid zero result.
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from ..models.data_point import DataPoint, Sentiment

DEFAULT_PERIOD_DAYS = 30
MAX_FEED_LIMIT = 100


@dataclass
class SentimentStats:
    period: str
    total: int
    positive: int
    negative: int
    neutral: int


@dataclass
class TopicStats:
    period: str
    total_mentions: int
    topics: Dict[str, int] = field(default_factory=dict)


@dataclass
class FeedPage:
    data: List[DataPoint]
    total: int
    page: int
    last_page: int
    limit: int


def _period_label(period_days: int) -> str:
    return f"{period_days} days"


def _window_filters(company_id: UUID, period_days: Optional[int]) -> list:
    filters = [DataPoint.company_id == company_id]
    if period_days is not None:
        now = datetime.utcnow()
        filters.append(DataPoint.created_at >= now - timedelta(days=period_days))
        filters.append(DataPoint.created_at <= now)
    return filters


def get_stats(db: Session, company_id: UUID, period_days: int = DEFAULT_PERIOD_DAYS) -> SentimentStats:
    """
    Per-sentiment counts in one grouped query. total is their sum, so the
    two can never disagree.
    """
    rows = (
        db.query(DataPoint.sentiment, func.count(DataPoint.id))
        .filter(*_window_filters(company_id, period_days))
        .group_by(DataPoint.sentiment)
        .all()
    )
    counts = {s: 0 for s in Sentiment}
    for sentiment, n in rows:
        counts[Sentiment(sentiment)] = int(n)

    return SentimentStats(
        period=_period_label(period_days),
        total=sum(counts.values()),
        positive=counts[Sentiment.POSITIVE],
        negative=counts[Sentiment.NEGATIVE],
        neutral=counts[Sentiment.NEUTRAL],
    )


def get_top_topics(db: Session, company_id: UUID, period_days: int = DEFAULT_PERIOD_DAYS) -> TopicStats:
    """
    Topic histogram. Every occurrence counts, so ["a", "a"] adds 2 to "a";
    total_mentions is the sum of all topic-list lengths.
    """
    rows = (
        db.query(DataPoint.topics)
        .filter(*_window_filters(company_id, period_days))
        .all()
    )

    counts: Counter[str] = Counter()
    for (topics,) in rows:
        if not isinstance(topics, list):
            continue
        counts.update(t for t in topics if isinstance(t, str))

    return TopicStats(
        period=_period_label(period_days),
        total_mentions=sum(counts.values()),
        topics=dict(counts.most_common()),
    )


def get_feed(
    db: Session,
    company_id: UUID,
    *,
    page: int = 1,
    limit: int = 10,
    sentiment: Optional[Sentiment] = None,
    period_days: Optional[int] = None,
) -> FeedPage:
    """
    Newest-first feed with one row per distinct content.

    The most recent row of each content wins; the sentiment filter applies
    before deduplication. total counts distinct contents, so it agrees with
    what pagination can reach.
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if not 1 <= limit <= MAX_FEED_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_FEED_LIMIT}")

    filters = _window_filters(company_id, period_days)
    if sentiment is not None:
        filters.append(DataPoint.sentiment == sentiment)

    row_number = (
        func.row_number()
        .over(
            partition_by=DataPoint.content,
            order_by=(DataPoint.created_at.desc(), DataPoint.id.desc()),
        )
        .label("rn")
    )
    ranked = db.query(DataPoint.id.label("id"), row_number).filter(*filters).subquery()

    data = (
        db.query(DataPoint)
        .join(ranked, DataPoint.id == ranked.c.id)
        .filter(ranked.c.rn == 1)
        .order_by(DataPoint.created_at.desc(), DataPoint.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    total = (
        db.query(func.count(distinct(DataPoint.content)))
        .filter(*filters)
        .scalar()
    ) or 0

    return FeedPage(
        data=data,
        total=int(total),
        page=page,
        last_page=math.ceil(total / limit),
        limit=limit,
    )
