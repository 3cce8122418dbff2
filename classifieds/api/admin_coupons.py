import logging

import asyncpg  # type: ignore
from fastapi import APIRouter, Depends, HTTPException, Request

from classifieds.database.connection import get_pool
from classifieds.database.query_builder import QueryBuilder
from classifieds.middleware.auth import require_admin
from classifieds.middleware.rate_limit import limiter
from classifieds.models.coupon import CouponForm, coupon_from_row

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(
    prefix="/admin/coupons",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)

COUPON_CODE_INDEX = "coupons_code_unique_idx"
DUPLICATE_CODE_MESSAGE = "A coupon with this code already exists."


def is_duplicate_code_error(error: Exception) -> bool:
    return isinstance(error, asyncpg.UniqueViolationError) or COUPON_CODE_INDEX in str(error)


def _store_error(error: Exception, action: str) -> HTTPException:
    if is_duplicate_code_error(error):
        return HTTPException(status_code=409, detail=DUPLICATE_CODE_MESSAGE)
    logger.error(f"Error trying to {action} coupon: {error}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Failed to {action} coupon")


@router.get("")
@limiter.limit("60/minute")
async def list_coupons(request: Request):
    async with get_pool().acquire() as conn:
        try:
            rows = await conn.fetch("SELECT * FROM coupons ORDER BY created_at DESC")
        except Exception as e:
            logger.error(f"Error fetching coupons: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch coupons")
    return [coupon_from_row(row) for row in rows]


@router.post("", status_code=201)
@limiter.limit("30/minute")
async def create_coupon(request: Request, body: CouponForm):
    query, values = QueryBuilder.build_insert_query(body.model_dump(), "coupons")
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except Exception as e:
            raise _store_error(e, "create")

    logger.info(f"Coupon {body.code} created")
    return coupon_from_row(row)


@router.put("/{coupon_id}")
@limiter.limit("30/minute")
async def update_coupon(request: Request, coupon_id: str, body: CouponForm):
    query, values = QueryBuilder.build_update_query(body.model_dump(), "coupons", "id", coupon_id)
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except asyncpg.DataError:
            raise HTTPException(status_code=404, detail="Coupon not found")
        except Exception as e:
            raise _store_error(e, "update")

    if row is None:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon_from_row(row)


@router.patch("/{coupon_id}/toggle")
@limiter.limit("30/minute")
async def toggle_coupon(request: Request, coupon_id: str):
    query = """
    UPDATE coupons SET active = NOT active, updated_at = NOW()
    WHERE id::text = $1
    RETURNING *
    """
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, coupon_id)
        except Exception as e:
            raise _store_error(e, "toggle")

    if row is None:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon_from_row(row)


@router.delete("/{coupon_id}")
@limiter.limit("30/minute")
async def delete_coupon(request: Request, coupon_id: str):
    async with get_pool().acquire() as conn:
        try:
            result = await conn.execute("DELETE FROM coupons WHERE id::text = $1", coupon_id)
        except Exception as e:
            raise _store_error(e, "delete")

    if result == "DELETE 0":
        raise HTTPException(status_code=404, detail="Coupon not found")
    return {"message": "Coupon deleted"}
