from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, JSON, Uuid
from datetime import datetime
import uuid

from ..core.db import Base

class Report(Base):
    __tablename__ = "reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    period_days = Column(Integer, nullable=False)
    summary = Column(JSON, nullable=False)  # {total, sentiment, by_type: {...}}
    analysis_text = Column(Text, nullable=True)
    suggestion_text = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
