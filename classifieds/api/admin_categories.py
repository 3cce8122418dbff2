import logging

import asyncpg  # type: ignore
from fastapi import APIRouter, Depends, HTTPException, Request

from classifieds.database.connection import get_pool
from classifieds.database.query_builder import QueryBuilder
from classifieds.middleware.auth import require_admin
from classifieds.middleware.rate_limit import limiter
from classifieds.models.category import CategoryCreate, category_from_row
from classifieds.services.category_directory import invalidate_categories

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(
    prefix="/admin/categories",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)

DUPLICATE_SLUG_MESSAGE = "A category with this slug already exists."


@router.get("")
@limiter.limit("60/minute")
async def list_categories(request: Request):
    async with get_pool().acquire() as conn:
        try:
            rows = await conn.fetch("SELECT * FROM categories ORDER BY name")
        except Exception as e:
            logger.error(f"Error fetching categories: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch categories")
    return [category_from_row(row) for row in rows]


@router.post("", status_code=201)
@limiter.limit("30/minute")
async def create_category(request: Request, body: CategoryCreate):
    query, values = QueryBuilder.build_insert_query(body.to_record(), "categories")
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except asyncpg.UniqueViolationError:
            raise HTTPException(status_code=409, detail=DUPLICATE_SLUG_MESSAGE)
        except Exception as e:
            logger.error(f"Error creating category: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to create category")

    invalidate_categories()
    logger.info(f"Category '{row['name']}' created")
    return category_from_row(row)


@router.put("/{category_id}")
@limiter.limit("30/minute")
async def update_category(request: Request, category_id: str, body: CategoryCreate):
    query, values = QueryBuilder.build_update_query(
        body.to_record(), "categories", "id", category_id
    )
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, *values)
        except asyncpg.UniqueViolationError:
            raise HTTPException(status_code=409, detail=DUPLICATE_SLUG_MESSAGE)
        except asyncpg.DataError:
            raise HTTPException(status_code=404, detail="Category not found")
        except Exception as e:
            logger.error(f"Error updating category {category_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to update category")

    if row is None:
        raise HTTPException(status_code=404, detail="Category not found")
    invalidate_categories()
    return category_from_row(row)


@router.delete("/{category_id}")
@limiter.limit("30/minute")
async def delete_category(request: Request, category_id: str):
    async with get_pool().acquire() as conn:
        try:
            result = await conn.execute(
                "DELETE FROM categories WHERE id::text = $1", category_id
            )
        except Exception as e:
            logger.error(f"Error deleting category {category_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to delete category")

    if result == "DELETE 0":
        raise HTTPException(status_code=404, detail="Category not found")
    invalidate_categories()
    return {"message": "Category deleted"}
