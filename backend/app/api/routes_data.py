import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..core.exceptions import AcquisitionFailure, CompanyNotFound, PersistenceFailure
from ..models.company import Company
from ..schemas.reputation import RefreshOut
from ..services.connectors import AcquisitionStrategy, get_acquisition_strategy
from ..services.ingestion import refresh_company
from ..services.refresh_guard import acquire_refresh_slot, release_refresh_slot
from .routes_dashboard import get_caller_company, verify_api_key

router = APIRouter(tags=["data"])
logger = logging.getLogger(__name__)


def get_strategy() -> AcquisitionStrategy:
    return get_acquisition_strategy()


@router.post("/data/refresh", response_model=RefreshOut)
async def refresh_data(
    _: None = Depends(verify_api_key),
    company: Company = Depends(get_caller_company),
    db: Session = Depends(get_db),
    strategy: AcquisitionStrategy = Depends(get_strategy),
):
    """
    Run one refresh for the caller's company and return the run summary.

    Throttled per company: a second request inside
    REFRESH_MIN_INTERVAL_SECONDS gets 429 instead of a second paid search.
    """
    company_id = company.id
    if not acquire_refresh_slot(company_id):
        raise HTTPException(
            status_code=429,
            detail="A refresh for this company is already running or ran recently. Try again later.",
        )

    logger.info(
        "Refresh requested",
        extra={"company_id": str(company_id), "strategy": strategy.name, "step": "refresh_requested"},
    )

    try:
        summary = await refresh_company(db, company_id, strategy)
    except CompanyNotFound as e:
        release_refresh_slot(company_id)
        raise HTTPException(status_code=404, detail=str(e))
    except AcquisitionFailure:
        release_refresh_slot(company_id)
        raise HTTPException(
            status_code=503,
            detail="Reputation source is unavailable. Please retry later.",
        )
    except PersistenceFailure:
        release_refresh_slot(company_id)
        raise HTTPException(status_code=500, detail="Failed to save refreshed data.")
    except Exception:
        release_refresh_slot(company_id)
        raise

    return RefreshOut.model_validate(summary)
