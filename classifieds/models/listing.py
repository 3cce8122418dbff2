import json
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from classifieds.models.utils import snake_to_camel

ListingStatus = Literal["active", "pending", "expired", "rejected", "paused"]
ListingType = Literal["grid", "header", "footer"]
AdType = Literal["sale", "rent"]

# asyncpg hands these back as UUID objects / JSON text
_UUID_COLUMNS = ("id", "user_id", "category_id", "plan_id")
_JSON_COLUMNS = ("contact_info", "category")


class CategorySummary(BaseModel):
    """Category embedded in a listing row by the pipeline join"""
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str
    icon: str | None = None


class ListingBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    category_id: str | None = None
    ad_type: AdType | None = None
    title: str
    description: str = ""
    price: Annotated[Decimal, Field(ge=0)] = Decimal("0")
    photos: List[str] = Field(default_factory=list)
    location: str = ""
    contact_info: Dict[str, Any] = Field(default_factory=dict)
    plan_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: ListingStatus = "pending"
    views: int = 0
    admin_approved: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    category: CategorySummary | None = None

    def window_open(self, now: datetime) -> bool:
        return self.end_date is None or self.end_date >= now

    def is_publicly_visible(self, now: datetime) -> bool:
        return self.status == "active" and self.window_open(now)


class GridListing(ListingBase):
    type: Literal["grid"]


class HeaderListing(ListingBase):
    """Shown in the featured strip as well as the general grid"""
    type: Literal["header"]


class FooterListing(ListingBase):
    """Sponsored footer ad, sold by exposure count"""
    type: Literal["footer"]
    exposures: Annotated[int, Field(ge=0)] = 0
    max_exposures: Annotated[int, Field(ge=0)] = 0

    @property
    def exposures_left(self) -> int:
        return max(self.max_exposures - self.exposures, 0)

    def has_exposure_budget(self) -> bool:
        return self.exposures < self.max_exposures

    def is_publicly_visible(self, now: datetime) -> bool:
        return (
            super().is_publicly_visible(now)
            and self.admin_approved
            and self.has_exposure_budget()
        )


Listing = Annotated[
    Union[GridListing, HeaderListing, FooterListing],
    Field(discriminator="type"),
]
listing_adapter: TypeAdapter[Listing] = TypeAdapter(Listing)


def listing_from_row(row) -> Listing:
    """Convert an asyncpg Record (or dict) from the ads table into a typed listing"""
    data = dict(row)
    for key in _UUID_COLUMNS:
        if data.get(key) is not None:
            data[key] = str(data[key])
    for key in _JSON_COLUMNS:
        if isinstance(data.get(key), str):
            data[key] = json.loads(data[key])
    if data.get("category") and data["category"].get("id") is not None:
        data["category"]["id"] = str(data["category"]["id"])
    if data.get("photos") is None:
        data["photos"] = []
    return listing_adapter.validate_python(data)


class ListingStatusChange(BaseModel):
    """Owner-side status toggle"""
    status: Literal["active", "paused", "pending"]


class ListingUpdate(BaseModel):
    """Field edits an owner can make on an existing listing"""
    model_config = ConfigDict(
        alias_generator=snake_to_camel,
        populate_by_name=True,
        extra="ignore"
    )

    category_id: str | None = None
    title: Annotated[str, Field(max_length=200, min_length=3)] | None = None
    description: Annotated[str, Field(max_length=5000)] | None = None
    price: Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)] | None = None
    photos: List[Annotated[str, Field(max_length=2048)]] | None = None
    location: Annotated[str, Field(max_length=200)] | None = None
    contact_info: Dict[str, Any] | None = None


class AdminStatusChange(BaseModel):
    status: ListingStatus


class BulkModeration(BaseModel):
    action: Literal["approve", "reject", "delete"]
    ids: Annotated[List[str], Field(min_length=1, max_length=200)]
