from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.exceptions import CompanyNotFound, PersistenceFailure
from ..models.data_point import DataPoint
from ..models.report import Report
from .companies import find_company_by_id
from .connectors.base import AcquisitionResult, AcquisitionStrategy, DEFAULT_PERIOD
from .normalizer import DataPointDraft, normalize
from .topics import TopicTagger

logger = logging.getLogger(__name__)
settings = get_settings()

PERIOD_DAYS = {
    "all_time": 3650,
    "last_6_months": 180,
    "last_30_days": 30,
    "last_7_days": 7,
}


@dataclass
class RefreshSummary:
    total_saved: int
    overall_sentiment: str
    analysis: Optional[str] = None
    suggestion: Optional[str] = None


def _build_report(
    company_id: UUID,
    period: str,
    result: AcquisitionResult,
    drafts: List[DataPointDraft],
) -> Report:
    by_type = Counter(d.sentiment.value for d in drafts)
    return Report(
        company_id=company_id,
        period_days=PERIOD_DAYS.get(period, PERIOD_DAYS[DEFAULT_PERIOD]),
        summary={
            "total": len(drafts),
            "sentiment": result.overall_sentiment,
            "by_type": {
                "COMPLAINT": by_type.get("NEGATIVE", 0),
                "PRAISE": by_type.get("POSITIVE", 0),
                "OTHER": by_type.get("NEUTRAL", 0),
            },
            "sources": [s.uri for s in result.sources],
        },
        analysis_text=result.analysis,
        suggestion_text=result.suggestion,
    )


def _persist_run(
    db: Session,
    company_id: UUID,
    period: str,
    result: AcquisitionResult,
    drafts: List[DataPointDraft],
) -> None:
    """
    Write every draft (and the run report) in one transaction.

    Either the whole batch becomes visible or none of it does.
    """
    now = datetime.utcnow()
    try:
        for draft in drafts:
            db.add(
                DataPoint(
                    company_id=company_id,
                    source=draft.source,
                    original_url=draft.original_url,
                    author=draft.author,
                    title=draft.title,
                    content=draft.content,
                    sentiment=draft.sentiment,
                    topics=list(draft.topics),
                    created_at=draft.published_at or now,
                )
            )
        if settings.PERSIST_RUN_REPORTS:
            db.add(_build_report(company_id, period, result, drafts))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(
            "Refresh batch rolled back",
            extra={"company_id": str(company_id), "step": "persist"},
        )
        raise PersistenceFailure(str(e)) from e


async def refresh_company(
    db: Session,
    company_id: UUID | str,
    strategy: AcquisitionStrategy,
    *,
    period: str | None = None,
    tagger: TopicTagger | None = None,
) -> RefreshSummary:
    """
    One refresh run: resolve → acquire → normalise → (tag) → persist.

    Raises CompanyNotFound, AcquisitionFailure (from the channel) and
    PersistenceFailure. Callers are expected to throttle concurrent runs for
    the same company (see refresh_guard); nothing here serialises them.
    """
    company = find_company_by_id(db, company_id)
    if company is None:
        raise CompanyNotFound(str(company_id))

    period = period or settings.DEFAULT_ACQUISITION_PERIOD
    log_extra = {"company_id": str(company.id), "strategy": strategy.name}

    logger.info("Starting refresh for %s", company.name, extra={**log_extra, "step": "start"})

    result = await strategy.acquire(company.name, period)
    drafts = normalize(result)

    if tagger is None and settings.TOPIC_EXTRACTION_ENABLED:
        tagger = TopicTagger()
    if tagger is not None:
        drafts = await tagger.tag(drafts)

    _persist_run(db, company.id, period, result, drafts)

    logger.info(
        "Refresh completed for %s (overall sentiment %s)",
        company.name,
        result.overall_sentiment,
        extra={**log_extra, "step": "completed", "saved": len(drafts)},
    )

    return RefreshSummary(
        total_saved=len(drafts),
        overall_sentiment=result.overall_sentiment,
        analysis=result.analysis,
        suggestion=result.suggestion,
    )
