import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from classifieds.database.connection import get_pool
from classifieds.middleware.auth import Session, get_session
from classifieds.middleware.rate_limit import limiter
from classifieds.models.message import ContactRequest, message_from_row
from classifieds.services.conversations import OwnListingError, start_conversation
from classifieds.services.listing_pipeline import fetch_listing

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("/contact")
@limiter.limit("20/minute")
async def contact_seller(
    request: Request, body: ContactRequest, session: Session = Depends(get_session)
):
    """Open (or reuse) the conversation about an ad and return its first message id"""
    try:
        listing = await fetch_listing(body.ad_id)
    except Exception as e:
        logger.error(f"Error fetching ad {body.ad_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Could not start the conversation")
    if listing is None:
        raise HTTPException(status_code=404, detail="Ad not found")

    try:
        handle = await start_conversation(session.user_id, listing.user_id, listing.id)
    except OwnListingError:
        raise HTTPException(status_code=400, detail="This is your own ad")
    except Exception as e:
        logger.error(f"Error starting conversation on ad {listing.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Could not start the conversation")

    return {"message_id": handle.message_id, "created": handle.created}


@router.get("")
@limiter.limit("60/minute")
async def get_messages(
    request: Request,
    unread: Optional[bool] = None,
    session: Session = Depends(get_session),
):
    query = """
    SELECT m.*, u.name AS sender_name, a.title AS ad_title
    FROM messages m
    LEFT JOIN users u ON u.id = m.sender_id
    LEFT JOIN ads a ON a.id = m.ad_id
    WHERE m.receiver_id = $1
    """
    values = [session.user_id]
    if unread is not None:
        query += " AND m.read = $2"
        values.append(not unread)
    query += " ORDER BY m.created_at DESC"

    async with get_pool().acquire() as conn:
        try:
            rows = await conn.fetch(query, *values)
        except Exception as e:
            logger.error(f"Error fetching messages: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to fetch messages")

    return [message_from_row(row) for row in rows]


@router.patch("/{message_id}/read")
@limiter.limit("60/minute")
async def mark_read(request: Request, message_id: str, session: Session = Depends(get_session)):
    query = """
    UPDATE messages SET read = TRUE, updated_at = NOW()
    WHERE id::text = $1 AND receiver_id = $2
    RETURNING id
    """
    async with get_pool().acquire() as conn:
        try:
            row = await conn.fetchrow(query, message_id, session.user_id)
        except Exception as e:
            logger.error(f"Error marking message {message_id} read: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to update message")

    if row is None:
        raise HTTPException(status_code=404, detail="Message not found")
    return {"message": "Message marked as read"}
