from __future__ import annotations

import asyncio
import logging
from typing import Dict

from sqlalchemy.orm import Session

from ..core.celery_app import celery_app
from ..core.config import get_settings
from ..core.db import SessionLocal
from ..models.company import Company
from .connectors import get_acquisition_strategy
from .connectors.browser_search import shutdown_shared_browser
from .ingestion import refresh_company
from .refresh_guard import acquire_refresh_slot, release_refresh_slot

logger = logging.getLogger(__name__)
settings = get_settings()


async def _refresh_all(db: Session) -> Dict[str, int]:
    strategy = get_acquisition_strategy()
    stats = {"refreshed": 0, "skipped": 0, "failed": 0}

    try:
        company_ids = [c.id for c in db.query(Company.id).order_by(Company.created_at.asc()).all()]
        for company_id in company_ids:
            if not acquire_refresh_slot(company_id):
                stats["skipped"] += 1
                continue
            try:
                await refresh_company(db, company_id, strategy)
                stats["refreshed"] += 1
            except Exception:
                # One company failing must not stop the rest of the batch
                release_refresh_slot(company_id)
                stats["failed"] += 1
                logger.exception(
                    "Scheduled refresh failed",
                    extra={"company_id": str(company_id), "step": "scheduled_refresh"},
                )
    finally:
        # Celery runs each task in a fresh event loop; the browser must not outlive it
        await shutdown_shared_browser()

    return stats


@celery_app.task(name="app.services.scheduled_refresh.refresh_all_companies")
def refresh_all_companies() -> Dict[str, int]:
    """
    Periodic task refreshing every company through the same orchestrator and
    throttle the API uses.
    """
    if not settings.SCHEDULED_REFRESH_ENABLED:
        logger.info("Scheduled refresh disabled", extra={"step": "scheduled_refresh"})
        return {"refreshed": 0, "skipped": 0, "failed": 0}

    db: Session = SessionLocal()
    try:
        stats = asyncio.run(_refresh_all(db))
        logger.info(
            "Scheduled refresh finished: %s",
            stats,
            extra={"step": "scheduled_refresh"},
        )
        return stats
    finally:
        db.close()
