"""
DataPoint model: one unit of reputation evidence about a company.

Rows are append-only. They are written exclusively by the ingestion
orchestrator in a single transaction per refresh run and are only ever
removed through the company cascade.
"""
from datetime import datetime
import enum
import uuid

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, Enum, Index, Uuid

from ..core.db import Base


class Sentiment(str, enum.Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"


class DataPoint(Base):
    __tablename__ = "data_points"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    source = Column(String, nullable=False)        # domain or provider label
    original_url = Column(String, nullable=True)   # best-effort provenance link
    author = Column(String, nullable=True)
    title = Column(String, nullable=True)
    content = Column(Text, nullable=False)
    sentiment = Column(Enum(Sentiment), nullable=False, default=Sentiment.NEUTRAL)
    topics = Column(JSON, nullable=False, default=list)  # List[str], duplicates allowed

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_data_points_company_created", "company_id", "created_at"),
    )
