import logging
from typing import Set

import asyncpg  # type: ignore
from fastapi import APIRouter, Depends, HTTPException, Request

from classifieds.database.connection import get_pool
from classifieds.middleware.auth import Session, get_session
from classifieds.middleware.rate_limit import limiter
from classifieds.models.listing import listing_from_row
from classifieds.models.message import FavoriteCreate
from classifieds.services.cards import render_card
from classifieds.services.listing_pipeline import BASE_SELECT

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/favorites", tags=["favorites"])


async def fetch_favorite_ids(user_id: str) -> Set[str]:
    """Ids of the ads a user saved; empty on failure, the hearts are cosmetic"""
    try:
        async with get_pool().acquire() as conn:
            rows = await conn.fetch("SELECT ad_id FROM favorites WHERE user_id = $1", user_id)
        return {str(row["ad_id"]) for row in rows}
    except Exception as e:
        logger.error(f"Error fetching favorite ids for {user_id}: {e}", exc_info=True)
        return set()


@router.get("")
@limiter.limit("50/minute")
async def get_favorites(request: Request, session: Session = Depends(get_session)):
    get_favorites_query = (
        BASE_SELECT
        + """
    JOIN favorites f ON f.ad_id = a.id
    WHERE f.user_id = $1
    ORDER BY f.created_at DESC
    """
    )
    async with get_pool().acquire() as conn:
        try:
            rows = await conn.fetch(get_favorites_query, session.user_id)
        except Exception as e:
            logger.error(f"Error fetching favorites: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch favorites")

    listings = [listing_from_row(row) for row in rows]
    ids = [listing.id for listing in listings]
    return {"ids": ids, "ads": [render_card(listing, ids) for listing in listings]}


@router.post("")
@limiter.limit("50/minute")
async def add_favorite(
    request: Request, body: FavoriteCreate, session: Session = Depends(get_session)
):
    logger.info(f"Adding favorite for ad {body.ad_id}, user {session.user_id}")

    add_favorite_query = """
    INSERT INTO favorites (user_id, ad_id)
    VALUES ($1, $2::uuid)
    ON CONFLICT (user_id, ad_id) DO NOTHING
    """
    async with get_pool().acquire() as conn:
        try:
            await conn.execute(add_favorite_query, session.user_id, body.ad_id)
        except (asyncpg.ForeignKeyViolationError, asyncpg.DataError):
            raise HTTPException(status_code=404, detail="Ad not found")
        except Exception as e:
            logger.error(f"Error adding favorite: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to add favorite")
    return {"message": "Ad added to favorites"}


@router.delete("/{ad_id}")
@limiter.limit("50/minute")
async def remove_favorite(request: Request, ad_id: str, session: Session = Depends(get_session)):
    logger.info(f"Removing favorite for ad {ad_id}, user {session.user_id}")

    remove_favorite_query = """
    DELETE FROM favorites
    WHERE user_id = $1 AND ad_id::text = $2
    """
    async with get_pool().acquire() as conn:
        try:
            await conn.execute(remove_favorite_query, session.user_id, ad_id)
        except Exception as e:
            logger.error(f"Error removing favorite: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to remove favorite")
    return {"message": "Ad removed from favorites"}
