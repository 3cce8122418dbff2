from decimal import Decimal
from typing import Annotated, Literal
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator

from classifieds.models.listing import AdType
from classifieds.models.utils import blank_to_none

SortKey = Literal["newest", "price_low", "price_high"]

# Order in which filters are mirrored into the shareable URL
URL_KEYS = (
    "q",
    "category",
    "seller",
    "location",
    "min_price",
    "max_price",
    "state",
    "city",
    "ad_type",
    "sort",
)


class ListingFilters(BaseModel):
    """
    Every filter the ad search screen can set.

    Each field is optional and independent; None means "no filter".
    The instance is immutable, a filter change builds a new one.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    q: Annotated[str, Field(max_length=200)] | None = None
    category: Annotated[str, Field(max_length=64)] | None = None
    seller: Annotated[str, Field(max_length=128)] | None = None
    # Accepted and echoed, only applied when the ad type flag is on
    ad_type: AdType | None = None
    state: Annotated[str, Field(pattern=r"^[A-Za-z]{2}$")] | None = None
    city: Annotated[str, Field(max_length=100)] | None = None
    location: Annotated[str, Field(max_length=200)] | None = None
    min_price: Annotated[Decimal, Field(ge=0)] | None = None
    max_price: Annotated[Decimal, Field(ge=0)] | None = None
    sort: SortKey = "newest"

    @field_validator(
        "q", "category", "seller", "ad_type", "state", "city", "location",
        "min_price", "max_price", mode="before",
    )
    @classmethod
    def _blank_is_unset(cls, value):
        return blank_to_none(value)

    @field_validator("state")
    @classmethod
    def _upper_state(cls, value):
        return value.upper() if value else value

    @field_validator("sort", mode="before")
    @classmethod
    def _default_sort(cls, value):
        return blank_to_none(value) or "newest"

    @classmethod
    def defaults(cls) -> "ListingFilters":
        return cls()

    def cleared(self) -> "ListingFilters":
        """Reset every filter to its default"""
        return self.defaults()

    def is_default(self) -> bool:
        return self == self.defaults()

    def to_query_params(self) -> dict[str, str]:
        """Filters as URL query parameters; unset filters are left out"""
        params = {}
        for key in URL_KEYS:
            value = getattr(self, key)
            if value is None:
                continue
            if key == "sort" and value == "newest":
                continue
            params[key] = str(value)
        return params

    def query_string(self) -> str:
        return urlencode(self.to_query_params())
