"""Record builders for the owner-side actions on a listing"""
from datetime import datetime, timedelta

from classifieds.models.listing import Listing, ListingUpdate

DUPLICATE_SUFFIX = " (Copy)"
RENEWAL_DAYS = 30


def build_duplicate_payload(original: Listing, owner_id: str, now: datetime) -> dict:
    """
    Insert payload for a copy of `original`.

    The copy goes back through moderation: pending and not approved, with
    fresh counters. Content, placement and plan are carried over.
    """
    return {
        "user_id": owner_id,
        "category_id": original.category_id,
        "type": original.type,
        "ad_type": original.ad_type,
        "title": f"{original.title}{DUPLICATE_SUFFIX}",
        "description": original.description,
        "price": original.price,
        "photos": list(original.photos),
        "location": original.location,
        "contact_info": dict(original.contact_info),
        "plan_id": original.plan_id,
        "start_date": original.start_date or now,
        "end_date": original.end_date or now + timedelta(days=RENEWAL_DAYS),
        "status": "pending",
        "max_exposures": getattr(original, "max_exposures", 0),
        "admin_approved": False,
    }


def build_renewal_changes(now: datetime) -> dict:
    return {"end_date": now + timedelta(days=RENEWAL_DAYS), "status": "active"}


def build_edit_changes(update: ListingUpdate) -> dict:
    """Only the fields the owner actually sent"""
    return update.model_dump(exclude_unset=True, exclude_none=True)
