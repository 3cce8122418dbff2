import logging

import asyncpg  # type: ignore
from fastapi import APIRouter, Depends, HTTPException, Request

from classifieds.database.connection import get_pool
from classifieds.database.query_builder import QueryBuilder
from classifieds.middleware.auth import Session, require_admin
from classifieds.middleware.rate_limit import limiter
from classifieds.models.special_ad import (
    SpecialAdForm,
    SpecialAdStatusChange,
    special_ad_from_row,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(
    prefix="/admin/special-ads",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("")
@limiter.limit("60/minute")
async def list_special_ads(request: Request):
    """Every banner whatever its status, newest first"""
    async with get_pool().acquire() as conn:
        try:
            rows = await conn.fetch("SELECT * FROM special_ads ORDER BY created_at DESC")
        except Exception as e:
            logger.error(f"Error fetching special ads: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch special ads")
    return [special_ad_from_row(row) for row in rows]


@router.post("", status_code=201)
@limiter.limit("30/minute")
async def create_special_ad(
    request: Request, body: SpecialAdForm, admin: Session = Depends(require_admin)
):
    record = {**body.model_dump(), "created_by": admin.user_id}
    query, values = QueryBuilder.build_insert_query(record, "special_ads")
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except Exception as e:
            logger.error(f"Error creating special ad: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to create special ad")

    logger.info(f"Admin {admin.user_id} created special ad '{row['title']}'")
    return special_ad_from_row(row)


async def _update(ad_id: str, changes: dict):
    query, values = QueryBuilder.build_update_query(changes, "special_ads", "id", ad_id)
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except asyncpg.DataError:
            raise HTTPException(status_code=404, detail="Special ad not found")
        except Exception as e:
            logger.error(f"Error updating special ad {ad_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to update special ad")

    if row is None:
        raise HTTPException(status_code=404, detail="Special ad not found")
    return special_ad_from_row(row)


@router.put("/{ad_id}")
@limiter.limit("30/minute")
async def update_special_ad(request: Request, ad_id: str, body: SpecialAdForm):
    return await _update(ad_id, body.model_dump())


@router.patch("/{ad_id}/status")
@limiter.limit("60/minute")
async def set_special_ad_status(request: Request, ad_id: str, body: SpecialAdStatusChange):
    return await _update(ad_id, {"status": body.status})


@router.delete("/{ad_id}")
@limiter.limit("30/minute")
async def delete_special_ad(request: Request, ad_id: str):
    async with get_pool().acquire() as conn:
        try:
            result = await conn.execute("DELETE FROM special_ads WHERE id::text = $1", ad_id)
        except Exception as e:
            logger.error(f"Error deleting special ad {ad_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to delete special ad")

    if result == "DELETE 0":
        raise HTTPException(status_code=404, detail="Special ad not found")
    return {"message": "Special ad deleted"}
