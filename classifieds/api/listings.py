import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from classifieds.api.favorites import fetch_favorite_ids
from classifieds.database.connection import get_pool
from classifieds.middleware.auth import Session, get_optional_session
from classifieds.middleware.rate_limit import limiter
from classifieds.models.filters import ListingFilters
from classifieds.services.cards import render_card
from classifieds.services.category_directory import resolve_categories
from classifieds.services.listing_pipeline import (
    FEATURED_LIMIT,
    SELLER_OTHER_ADS_LIMIT,
    AdSurface,
    chunk_slides,
    fetch_listing,
    search_listings,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/ads", tags=["ads"])


async def _favorites_for(session: Optional[Session]) -> set:
    return await fetch_favorite_ids(session.user_id) if session else set()


@router.get("")
@limiter.limit("60/minute")
async def search_ads(
    request: Request,
    filters: Annotated[ListingFilters, Query()],
    session: Optional[Session] = Depends(get_optional_session),
):
    """
    Grid search.

    A failed read does not raise: the response carries status "error" and an
    empty list, so the page can show its error state next to the filters.
    """
    result = await search_listings(filters, AdSurface.GRID)
    lookup = await resolve_categories(result.listings)
    favorite_ids = await _favorites_for(session)

    return {
        "status": result.status,
        "count": len(result.listings),
        "ads": [render_card(listing, favorite_ids) for listing in result.listings],
        "filters": filters.model_dump(mode="json"),
        "query_string": filters.query_string(),
        "categories": [category.model_dump(mode="json") for category in lookup.categories],
        "category_source": lookup.source,
    }


@router.get("/featured")
@limiter.limit("60/minute")
async def featured_ads(
    request: Request, session: Optional[Session] = Depends(get_optional_session)
):
    result = await search_listings(
        ListingFilters.defaults(), AdSurface.FEATURED, limit=FEATURED_LIMIT
    )
    favorite_ids = await _favorites_for(session)
    cards = [render_card(listing, favorite_ids) for listing in result.listings]
    return {"status": result.status, "slides": chunk_slides(cards)}


@router.get("/{ad_id}")
@limiter.limit("120/minute")
async def get_ad(
    request: Request,
    ad_id: str,
    session: Optional[Session] = Depends(get_optional_session),
):
    try:
        listing = await fetch_listing(ad_id)
    except Exception as e:
        logger.error(f"Error fetching ad {ad_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch ad")

    now = datetime.now(timezone.utc)
    can_see_hidden = session is not None and (
        session.is_admin or (listing is not None and listing.user_id == session.user_id)
    )
    if listing is None or not (listing.is_publicly_visible(now) or can_see_hidden):
        raise HTTPException(status_code=404, detail="Ad not found")

    try:
        async with get_pool().acquire() as conn:
            await conn.execute("SELECT increment_ad_view($1::uuid)", listing.id)
    except Exception as e:
        logger.error(f"Error counting view for ad {listing.id}: {e}", exc_info=True)

    seller_result = await search_listings(
        ListingFilters(seller=listing.user_id),
        AdSurface.GRID,
        limit=SELLER_OTHER_ADS_LIMIT + 1,
    )
    others = [other for other in seller_result.listings if other.id != listing.id]
    favorite_ids = await _favorites_for(session)

    return {
        "ad": listing.model_dump(mode="json"),
        "card": render_card(listing, favorite_ids),
        "seller_ads": [
            render_card(other, favorite_ids) for other in others[:SELLER_OTHER_ADS_LIMIT]
        ],
    }
