from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from classifieds.models.listing import FooterListing, Listing


def format_brl(value) -> str:
    """Decimal("1234.5") -> 'R$ 1.234,50'"""
    amount = Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{amount:,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


def render_card(listing: Listing, favorite_ids: Iterable[str] = ()) -> dict:
    """Same card shape for the grid, featured strip, footer, favorites and seller views"""
    card = {
        "id": listing.id,
        "type": listing.type,
        "title": listing.title,
        "description": listing.description,
        "price": float(listing.price),
        "price_label": format_brl(listing.price),
        "photo": listing.photos[0] if listing.photos else None,
        "location": listing.location,
        "category": listing.category.model_dump() if listing.category else None,
        "ad_type": listing.ad_type,
        "user_id": listing.user_id,
        "created_at": listing.created_at.isoformat() if listing.created_at else None,
        "is_favorited": listing.id in set(favorite_ids),
    }
    if isinstance(listing, FooterListing):
        card["exposures_left"] = listing.exposures_left
    return card
