import logging
from typing import Literal, Optional

import asyncpg  # type: ignore
from fastapi import APIRouter, Depends, HTTPException, Request

from classifieds.database.connection import get_pool
from classifieds.database.query_builder import QueryBuilder
from classifieds.middleware.auth import Session, require_admin
from classifieds.middleware.rate_limit import limiter
from classifieds.models.listing import (
    AdminStatusChange,
    BulkModeration,
    ListingStatus,
    ListingType,
    listing_from_row,
)
from classifieds.services.listing_pipeline import BASE_SELECT, fetch_listing

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/admin/ads", tags=["admin"])

ADMIN_ORDER_BY = {
    "newest": "a.created_at DESC",
    "oldest": "a.created_at ASC",
    "views": "a.views DESC",
}

BULK_QUERIES = {
    "approve": "UPDATE ads SET status = 'active', admin_approved = TRUE, updated_at = NOW() "
    "WHERE id::text = ANY($1::text[])",
    "reject": "UPDATE ads SET status = 'rejected', admin_approved = FALSE, updated_at = NOW() "
    "WHERE id::text = ANY($1::text[])",
    "delete": "DELETE FROM ads WHERE id::text = ANY($1::text[])",
}


def affected_rows(command_status: str) -> int:
    """'UPDATE 3' -> 3"""
    try:
        return int(command_status.split()[-1])
    except (ValueError, IndexError, AttributeError):
        return 0


@router.get("")
@limiter.limit("60/minute")
async def list_ads(
    request: Request,
    status: Optional[ListingStatus] = None,
    type: Optional[ListingType] = None,
    sort: Literal["newest", "oldest", "views"] = "newest",
    admin: Session = Depends(require_admin),
):
    where, values = [], []
    if status:
        values.append(status)
        where.append(f"a.status = ${len(values)}")
    if type:
        values.append(type)
        where.append(f"a.type = ${len(values)}")

    query = BASE_SELECT
    if where:
        query += "WHERE " + " AND ".join(where)
    query += f" ORDER BY {ADMIN_ORDER_BY[sort]}"

    async with get_pool().acquire() as conn:
        try:
            rows = await conn.fetch(query, *values)
        except Exception as e:
            logger.error(f"Error fetching ads for moderation: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch ads")

    return [listing_from_row(row).model_dump(mode="json") for row in rows]


@router.patch("/{ad_id}/status")
@limiter.limit("60/minute")
async def set_status(
    request: Request,
    ad_id: str,
    body: AdminStatusChange,
    admin: Session = Depends(require_admin),
):
    query, values = QueryBuilder.build_update_query({"status": body.status}, "ads", "id", ad_id)
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except asyncpg.DataError:
            raise HTTPException(status_code=404, detail="Ad not found")
        except Exception as e:
            logger.error(f"Error setting status on ad {ad_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to update ad")

    if row is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    logger.info(f"Admin {admin.user_id} set ad {ad_id} to {body.status}")
    return listing_from_row(row).model_dump(mode="json")


@router.post("/{ad_id}/approve")
@limiter.limit("60/minute")
async def approve_footer_ad(request: Request, ad_id: str, admin: Session = Depends(require_admin)):
    """Footer ads only rotate once approved here"""
    try:
        listing = await fetch_listing(ad_id)
    except Exception as e:
        logger.error(f"Error fetching ad {ad_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch ad")

    if listing is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    if listing.type != "footer":
        raise HTTPException(status_code=400, detail="Only footer ads need approval")

    query, values = QueryBuilder.build_update_query(
        {"admin_approved": True}, "ads", "id", listing.id
    )
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except Exception as e:
            logger.error(f"Error approving ad {ad_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to approve ad")

    logger.info(f"Admin {admin.user_id} approved footer ad {ad_id}")
    return listing_from_row(row).model_dump(mode="json")


@router.post("/bulk")
@limiter.limit("20/minute")
async def bulk_moderate(
    request: Request, body: BulkModeration, admin: Session = Depends(require_admin)
):
    async with get_pool().acquire() as conn:
        try:
            result = await conn.execute(BULK_QUERIES[body.action], body.ids)
        except Exception as e:
            logger.error(f"Error running bulk {body.action}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to {body.action} ads")

    count = affected_rows(result)
    logger.info(f"Admin {admin.user_id} ran bulk {body.action} on {count} ads")
    return {"action": body.action, "affected": count}
