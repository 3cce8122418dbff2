from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from classifieds.models.utils import blank_to_none


class Coupon(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    code: str
    description: str | None = None
    discount_percent: Decimal
    max_uses: int | None = None
    usage_count: int = 0
    expires_at: datetime | None = None
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CouponForm(BaseModel):
    """
    Admin create/edit form for coupons.

    Everything is checked here, before the store sees the row:
    - code is trimmed and upper-cased, and must not be empty
    - discount is a percentage, 0 < p <= 100
    - max_uses is optional (unlimited), otherwise >= 0
    """
    model_config = ConfigDict(extra="ignore")

    code: Annotated[str, Field(min_length=1, max_length=32)]
    description: Annotated[str, Field(max_length=1000)] | None = None
    discount_percent: Annotated[Decimal, Field(gt=0, le=100, decimal_places=2)]
    max_uses: Annotated[int, Field(ge=0)] | None = None
    expires_at: datetime | None = None
    active: bool = True

    @field_validator("code", mode="before")
    @classmethod
    def _normalize_code(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("description", "max_uses", "expires_at", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        return blank_to_none(value)


def coupon_from_row(row) -> Coupon:
    data = dict(row)
    data["id"] = str(data["id"])
    return Coupon.model_validate(data)
