import logging

import asyncpg  # type: ignore
from fastapi import APIRouter, Depends, HTTPException, Request

from classifieds.database.connection import get_pool
from classifieds.database.query_builder import QueryBuilder
from classifieds.middleware.auth import require_admin
from classifieds.middleware.rate_limit import limiter
from classifieds.models.plan import PlanCreate, PlanUpdate, plan_from_row
from classifieds.services.checkout_links import CheckoutLinkError, create_payment_link

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(
    prefix="/admin/plans",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)

DUPLICATE_SLUG_MESSAGE = "A plan with this slug already exists."


async def _fetch_plan(conn, plan_id: str):
    row = await conn.fetchrow("SELECT * FROM plans WHERE id::text = $1", plan_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan_from_row(row)


@router.get("")
@limiter.limit("60/minute")
async def list_plans(request: Request):
    async with get_pool().acquire() as conn:
        try:
            rows = await conn.fetch("SELECT * FROM plans ORDER BY price")
        except Exception as e:
            logger.error(f"Error fetching plans: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch plans")
    return [plan_from_row(row) for row in rows]


@router.post("", status_code=201)
@limiter.limit("30/minute")
async def create_plan(request: Request, body: PlanCreate):
    query, values = QueryBuilder.build_insert_query(body.to_record(), "plans")
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except asyncpg.UniqueViolationError:
            raise HTTPException(status_code=409, detail=DUPLICATE_SLUG_MESSAGE)
        except Exception as e:
            logger.error(f"Error creating plan: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to create plan")

    logger.info(f"Plan '{row['name']}' created")
    return plan_from_row(row)


@router.patch("/{plan_id}")
@limiter.limit("30/minute")
async def update_plan(request: Request, plan_id: str, body: PlanUpdate):
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")

    query, values = QueryBuilder.build_update_query(changes, "plans", "id", plan_id)
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except asyncpg.UniqueViolationError:
            raise HTTPException(status_code=409, detail=DUPLICATE_SLUG_MESSAGE)
        except asyncpg.DataError:
            raise HTTPException(status_code=404, detail="Plan not found")
        except Exception as e:
            logger.error(f"Error updating plan {plan_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to update plan")

    if row is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan_from_row(row)


@router.patch("/{plan_id}/toggle")
@limiter.limit("30/minute")
async def toggle_plan(request: Request, plan_id: str):
    query = """
    UPDATE plans SET active = NOT active, updated_at = NOW()
    WHERE id::text = $1
    RETURNING *
    """
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, plan_id)
        except Exception as e:
            logger.error(f"Error toggling plan {plan_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to update plan")

    if row is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan_from_row(row)


@router.post("/{plan_id}/checkout-link")
@limiter.limit("10/minute")
async def generate_checkout_link(request: Request, plan_id: str):
    """Create a payment link for the plan and store it as the plan's checkout_url"""
    async with get_pool().acquire() as conn:
        try:
            plan = await _fetch_plan(conn, plan_id)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching plan {plan_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch plan")

    try:
        url = await create_payment_link(plan.name, plan.description, plan.price)
    except CheckoutLinkError as e:
        raise HTTPException(status_code=e.status, detail=e.message)

    query, values = QueryBuilder.build_update_query({"checkout_url": url}, "plans", "id", plan.id)
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except Exception as e:
            logger.error(f"Error saving checkout link for plan {plan_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to save checkout link")

    logger.info(f"Checkout link saved for plan {plan_id}")
    return plan_from_row(row)
