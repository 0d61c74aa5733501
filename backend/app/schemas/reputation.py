# backend/app/schemas/reputation.py
from datetime import datetime
from typing import Dict, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..models.data_point import Sentiment


class _CamelModel(BaseModel):
    # The dashboard client speaks camelCase
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RefreshOut(_CamelModel):
    total_saved: int
    overall_sentiment: Sentiment
    analysis: str | None = None
    suggestion: str | None = None


class StatsOut(_CamelModel):
    period: str
    total: int
    positive: int
    negative: int
    neutral: int


class TopicsOut(_CamelModel):
    period: str
    total_mentions: int
    topics: Dict[str, int]


class DataPointOut(_CamelModel):
    id: UUID
    company_id: UUID
    source: str
    original_url: str | None = None
    author: str | None = None
    title: str | None = None
    content: str
    sentiment: Sentiment
    topics: List[str]
    created_at: datetime


class FeedMeta(_CamelModel):
    total: int
    page: int
    last_page: int
    limit: int


class FeedOut(_CamelModel):
    data: List[DataPointOut]
    meta: FeedMeta


class SampleReviewOut(_CamelModel):
    source: str
    author: str
    content: str
    sentiment: Sentiment


class SampleOut(_CamelModel):
    company: str
    total: int
    data: List[SampleReviewOut]
