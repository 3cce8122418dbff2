import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from classifieds.database.connection import get_pool
from classifieds.database.query_builder import QueryBuilder
from classifieds.middleware.auth import Session, get_session
from classifieds.middleware.rate_limit import limiter
from classifieds.models.listing import (
    Listing,
    ListingStatus,
    ListingStatusChange,
    ListingUpdate,
    listing_from_row,
)
from classifieds.services.listing_actions import (
    build_duplicate_payload,
    build_edit_changes,
    build_renewal_changes,
)
from classifieds.services.listing_pipeline import BASE_SELECT, fetch_listing

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/my-ads", tags=["my-ads"])


async def get_owned_listing(ad_id: str, session: Session) -> Listing:
    """404 when the ad does not exist, 403 when it belongs to someone else"""
    try:
        listing = await fetch_listing(ad_id)
    except Exception as e:
        logger.error(f"Error fetching ad {ad_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch ad")

    if listing is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    if listing.user_id != session.user_id:
        raise HTTPException(
            status_code=403, detail="You don't have permission to access this resource"
        )
    return listing


async def _apply_changes(listing: Listing, changes: dict, action: str) -> dict:
    query, values = QueryBuilder.build_update_query(changes, "ads", "id", listing.id)
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except Exception as e:
            logger.error(f"Error trying to {action} ad {listing.id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to {action} ad")
    logger.info(f"Ad {listing.id}: {action} done")
    return listing_from_row(row).model_dump(mode="json")


@router.get("")
@limiter.limit("60/minute")
async def get_my_ads(
    request: Request,
    status: Optional[ListingStatus] = None,
    session: Session = Depends(get_session),
):
    query = BASE_SELECT + "WHERE a.user_id = $1"
    values = [session.user_id]
    if status:
        query += " AND a.status = $2"
        values.append(status)
    query += " ORDER BY a.created_at DESC"

    async with get_pool().acquire() as conn:
        try:
            rows = await conn.fetch(query, *values)
        except Exception as e:
            logger.error(f"Error fetching user's ads: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch ads")

    return [listing_from_row(row).model_dump(mode="json") for row in rows]


@router.patch("/{ad_id}/status")
@limiter.limit("30/minute")
async def change_status(
    request: Request,
    ad_id: str,
    body: ListingStatusChange,
    session: Session = Depends(get_session),
):
    listing = await get_owned_listing(ad_id, session)
    return await _apply_changes(listing, {"status": body.status}, "update status of")


@router.post("/{ad_id}/duplicate", status_code=201)
@limiter.limit("10/minute")
async def duplicate_ad(request: Request, ad_id: str, session: Session = Depends(get_session)):
    listing = await get_owned_listing(ad_id, session)
    payload = build_duplicate_payload(listing, session.user_id, datetime.now(timezone.utc))

    query, values = QueryBuilder.build_insert_query(payload, "ads")
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except Exception as e:
            logger.error(f"Error duplicating ad {ad_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to duplicate ad")

    logger.info(f"Ad {ad_id} duplicated as {row['id']}")
    return listing_from_row(row).model_dump(mode="json")


@router.post("/{ad_id}/renew")
@limiter.limit("10/minute")
async def renew_ad(request: Request, ad_id: str, session: Session = Depends(get_session)):
    listing = await get_owned_listing(ad_id, session)
    changes = build_renewal_changes(datetime.now(timezone.utc))
    return await _apply_changes(listing, changes, "renew")


@router.patch("/{ad_id}")
@limiter.limit("30/minute")
async def edit_ad(
    request: Request,
    ad_id: str,
    body: ListingUpdate,
    session: Session = Depends(get_session),
):
    changes = build_edit_changes(body)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")
    listing = await get_owned_listing(ad_id, session)
    return await _apply_changes(listing, changes, "edit")


@router.delete("/{ad_id}")
@limiter.limit("30/minute")
async def delete_ad(request: Request, ad_id: str, session: Session = Depends(get_session)):
    listing = await get_owned_listing(ad_id, session)
    async with get_pool().acquire() as conn:
        try:
            await conn.execute("DELETE FROM ads WHERE id = $1", listing.id)
        except Exception as e:
            logger.error(f"Error deleting ad {ad_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to delete ad")
    logger.info(f"Ad {ad_id} deleted by {session.user_id}")
    return {"message": "Ad deleted"}
