from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from classifieds.models.utils import blank_to_none

SpecialAdStatus = Literal["active", "inactive", "pending"]


class SpecialAd(BaseModel):
    """Image-only sponsored banner shown in the special ads carousel"""
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: str = ""
    price: Decimal = Decimal("0")
    image_url: str | None = None
    large_image_url: str | None = None
    status: str
    expires_at: datetime | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def banner_url(self) -> str | None:
        return self.large_image_url or self.image_url


class SpecialAdForm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Annotated[str, Field(min_length=1, max_length=200)]
    description: Annotated[str, Field(max_length=2000)] = ""
    price: Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)] = Decimal("0")
    image_url: Annotated[str, Field(max_length=1000)] | None = None
    large_image_url: Annotated[str, Field(max_length=1000)] | None = None
    status: SpecialAdStatus = "active"
    expires_at: datetime | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("image_url", "large_image_url", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        return blank_to_none(value)


class SpecialAdStatusChange(BaseModel):
    status: SpecialAdStatus


def special_ad_from_row(row) -> SpecialAd:
    data = dict(row)
    data["id"] = str(data["id"])
    return SpecialAd.model_validate(data)
