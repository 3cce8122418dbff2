# Re-export the models shared by the routers and services
from classifieds.models.category import Category, CategoryCreate
from classifieds.models.coupon import Coupon, CouponForm
from classifieds.models.filters import ListingFilters
from classifieds.models.listing import (
    FooterListing,
    GridListing,
    HeaderListing,
    Listing,
    listing_from_row,
)
from classifieds.models.plan import Plan, PlanCreate, PlanUpdate

__all__ = [
    # Listing models
    "Listing",
    "GridListing",
    "HeaderListing",
    "FooterListing",
    "listing_from_row",
    "ListingFilters",
    # Admin-owned entities
    "Category",
    "CategoryCreate",
    "Coupon",
    "CouponForm",
    "Plan",
    "PlanCreate",
    "PlanUpdate",
]
