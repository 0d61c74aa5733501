from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.config import get_settings
from ..core.exceptions import AcquisitionFailure
from ..schemas.reputation import SampleOut
from ..services.caching import cached_get
from ..services.connectors import OpenAIWebSearchStrategy

router = APIRouter(tags=["sample"])
settings = get_settings()

MAX_SAMPLE_COMPANY_LEN = 200


def get_sample_strategy() -> OpenAIWebSearchStrategy:
    return OpenAIWebSearchStrategy()


@router.get("/sample", response_model=SampleOut)
async def get_sample(
    company: str = Query("", max_length=MAX_SAMPLE_COMPANY_LEN),
    strategy: OpenAIWebSearchStrategy = Depends(get_sample_strategy),
):
    """
    Public teaser: up to 10 recent reviews for any company name.
    """
    company = company.strip()
    if not company:
        raise HTTPException(status_code=400, detail='The "company" parameter is required.')

    cache_key = f"sample|name:{company.lower()}"
    reviews = await cached_get(cache_key)
    if reviews is None:
        try:
            reviews = await strategy.fetch_sample(company)
        except AcquisitionFailure:
            raise HTTPException(status_code=503, detail="Failed to generate sample.")
        if reviews:
            await cached_get(cache_key, set_value=reviews, ttl=settings.SAMPLE_CACHE_TTL_SECONDS)

    return SampleOut(company=company, total=len(reviews), data=reviews)
