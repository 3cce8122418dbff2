import asyncio
import logging
from typing import List

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

from classifieds.middleware.rate_limit import limiter
from classifieds.models.filters import ListingFilters
from classifieds.models.listing import FooterListing
from classifieds.services.cards import render_card
from classifieds.services.footer_rotation import FooterAdRotation, RotationState
from classifieds.services.listing_pipeline import AdSurface, search_listings

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/footer-ads", tags=["footer-ads"])

TICK_SECONDS = 1.0


async def load_footer_ads() -> List[FooterListing]:
    result = await search_listings(ListingFilters.defaults(), AdSurface.FOOTER)
    return [listing for listing in result.listings if isinstance(listing, FooterListing)]


@router.get("")
@limiter.limit("60/minute")
async def get_footer_ads(request: Request):
    result = await search_listings(ListingFilters.defaults(), AdSurface.FOOTER)
    return {
        "status": result.status,
        "ads": [render_card(listing) for listing in result.listings],
    }


@router.websocket("/ws")
async def footer_ads_socket(websocket: WebSocket):
    """
    One rotation per connection.

    Server events: show, tick, hide, contact, idle.
    Client actions: {"action": "dismiss" | "contact" | "reload"}.
    """
    await websocket.accept()

    async def send_event(event: str, payload: dict):
        message = {"event": event, **payload}
        if event == "show" and rotation.current is not None:
            message["ad"] = render_card(rotation.current)
        await websocket.send_json(message)

    rotation = FooterAdRotation(on_event=send_event)
    rotation.load(await load_footer_ads())
    if rotation.state is RotationState.IDLE:
        await send_event("idle", {})

    ticker = asyncio.create_task(rotation.run(TICK_SECONDS))
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                continue

            action = message.get("action") if isinstance(message, dict) else None
            if action == "dismiss":
                await rotation.dismiss()
            elif action == "contact":
                await rotation.contact()
            elif action == "reload":
                rotation.load(await load_footer_ads())
                if rotation.state is RotationState.IDLE:
                    await send_event("idle", {})
    except WebSocketDisconnect:
        logger.info("Footer ad socket closed")
    finally:
        await stop_ticker(ticker)
        await rotation.wait_for_reports()


async def stop_ticker(ticker: asyncio.Task) -> None:
    """Cancel the rotation task and collect whatever it ended with"""
    ticker.cancel()
    await asyncio.wait([ticker])
    if ticker.cancelled():
        return
    error = ticker.exception()
    if error is not None:
        logger.error(f"Footer rotation stopped with an error: {error}", exc_info=error)
