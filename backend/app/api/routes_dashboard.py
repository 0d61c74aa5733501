import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.db import get_db
from ..core.exceptions import NoCompanyForUser
from ..models.company import Company
from ..models.data_point import Sentiment
from ..schemas.reputation import DataPointOut, FeedMeta, FeedOut, StatsOut, TopicsOut
from ..services import analytics
from ..services.analytics import DEFAULT_PERIOD_DAYS, MAX_FEED_LIMIT
from ..services.companies import resolve_company_for_user

router = APIRouter(tags=["dashboard"])

settings = get_settings()
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
logger = logging.getLogger(__name__)


def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """
    Simple header-based API key authentication.

    - In dev, if API_AUTH_KEY is not set, auth is skipped.
    - Otherwise, require X-API-Key == API_AUTH_KEY.
    """
    expected = settings.API_AUTH_KEY

    # In dev with no configured key, skip auth for convenience
    if settings.ENV == "dev" and not expected:
        return

    if not expected:
        # In non-dev environments, missing config is treated as misconfiguration
        raise HTTPException(status_code=401, detail="API key not configured")

    if api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_current_user_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    """
    Caller identity as asserted by the upstream auth gateway.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="User not authenticated")
    return x_user_id.strip()


def get_caller_company(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> Company:
    try:
        return resolve_company_for_user(db, user_id)
    except NoCompanyForUser as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/dashboard/stats", response_model=StatsOut)
def get_stats(
    _: None = Depends(verify_api_key),
    period: int = Query(DEFAULT_PERIOD_DAYS, ge=1, le=3650),
    company: Company = Depends(get_caller_company),
    db: Session = Depends(get_db),
):
    stats = analytics.get_stats(db, company.id, period)
    return StatsOut.model_validate(stats)


@router.get("/dashboard/topics", response_model=TopicsOut)
def get_topics(
    _: None = Depends(verify_api_key),
    period: int = Query(DEFAULT_PERIOD_DAYS, ge=1, le=3650),
    company: Company = Depends(get_caller_company),
    db: Session = Depends(get_db),
):
    topics = analytics.get_top_topics(db, company.id, period)
    return TopicsOut.model_validate(topics)


@router.get("/dashboard/feed", response_model=FeedOut)
def get_feed(
    _: None = Depends(verify_api_key),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_FEED_LIMIT),
    sentiment: Sentiment | None = None,
    company: Company = Depends(get_caller_company),
    db: Session = Depends(get_db),
):
    feed = analytics.get_feed(db, company.id, page=page, limit=limit, sentiment=sentiment)
    return FeedOut(
        data=[DataPointOut.model_validate(dp) for dp in feed.data],
        meta=FeedMeta(total=feed.total, page=feed.page, last_page=feed.last_page, limit=feed.limit),
    )
