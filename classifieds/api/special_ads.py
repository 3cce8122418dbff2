import logging

from fastapi import APIRouter, Request

from classifieds.database.connection import get_pool
from classifieds.middleware.rate_limit import limiter
from classifieds.models.special_ad import special_ad_from_row

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/special-ads", tags=["special-ads"])

SPECIAL_ADS_LIMIT = 10


@router.get("")
@limiter.limit("60/minute")
async def get_special_ads(request: Request):
    """Active banners that have not expired, newest first. Empty on failure."""
    query = """
    SELECT * FROM special_ads
    WHERE status = 'active'
      AND (expires_at IS NULL OR expires_at > NOW())
    ORDER BY created_at DESC
    LIMIT $1
    """
    try:
        async with get_pool().acquire() as conn:
            rows = await conn.fetch(query, SPECIAL_ADS_LIMIT)
    except Exception as e:
        logger.error(f"Error fetching special ads: {e}", exc_info=True)
        return {"status": "error", "ads": []}

    ads = [special_ad_from_row(row) for row in rows]
    return {
        "status": "ok" if ads else "no_results",
        "ads": [{**ad.model_dump(mode="json"), "banner_url": ad.banner_url} for ad in ads],
    }
