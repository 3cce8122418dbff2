import uuid
from decimal import Decimal

from polyfactory.factories.pydantic_factory import ModelFactory
from polyfactory.fields import Use

from classifieds.models.coupon import CouponForm
from classifieds.models.listing import FooterListing, GridListing, HeaderListing


def _uuid() -> str:
    return str(uuid.uuid4())


def _firebase_uid() -> str:
    return f"firebase_uid_{ModelFactory.__random__.randint(100000, 999999)}"


class GridListingFactory(ModelFactory[GridListing]):
    """Active, open-ended grid ad"""

    __model__ = GridListing
    __check_model__ = False  # Suppress deprecation warning

    id = Use(_uuid)
    user_id = Use(_firebase_uid)
    category_id = None
    category = None
    plan_id = None
    title = Use(lambda: f"Anúncio {ModelFactory.__random__.randint(1, 999)}")
    price = Use(lambda: Decimal("150.00"))
    photos = Use(lambda: ["https://cdn.example.com/ads/photo-1.jpg"])
    location = "São Paulo - SP"
    contact_info = Use(lambda: {"phone": "+55 11 99999-0000"})
    status = "active"
    end_date = None
    views = 0
    admin_approved = False


class HeaderListingFactory(GridListingFactory):
    __model__ = HeaderListing


class FooterListingFactory(GridListingFactory):
    __model__ = FooterListing

    admin_approved = True
    exposures = 0
    max_exposures = 10


class CouponFormFactory(ModelFactory[CouponForm]):
    __model__ = CouponForm
    __check_model__ = False

    code = Use(lambda: f"PROMO{ModelFactory.__random__.randint(10, 99)}")
    description = None
    discount_percent = Use(lambda: Decimal("15"))
    max_uses = None
    expires_at = None
    active = True


def listing_row(listing) -> dict:
    """What the pool hands back for an ads row"""
    return listing.model_dump()
