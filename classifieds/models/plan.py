from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from classifieds.models.utils import blank_to_none, slugify


class Plan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    slug: str
    description: str = ""
    price: Decimal
    duration_days: int
    photo_limit: int = 0
    direct_contact: bool = False
    featured: bool = False
    active: bool = True
    checkout_url: str | None = None
    created_at: datetime | None = None


class PlanCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Annotated[str, Field(min_length=2, max_length=100)]
    slug: Annotated[str, Field(max_length=120)] | None = None
    description: Annotated[str, Field(max_length=2000)] = ""
    price: Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]
    duration_days: Annotated[int, Field(gt=0, le=3650)]
    photo_limit: Annotated[int, Field(ge=0, le=100)] = 0
    direct_contact: bool = False
    featured: bool = False
    active: bool = True

    @field_validator("slug", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        return blank_to_none(value)

    def to_record(self) -> dict:
        record = self.model_dump()
        record["slug"] = self.slug or slugify(self.name)
        return record


class PlanUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Annotated[str, Field(min_length=2, max_length=100)] | None = None
    slug: Annotated[str, Field(max_length=120)] | None = None
    description: Annotated[str, Field(max_length=2000)] | None = None
    price: Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)] | None = None
    duration_days: Annotated[int, Field(gt=0, le=3650)] | None = None
    photo_limit: Annotated[int, Field(ge=0, le=100)] | None = None
    direct_contact: bool | None = None
    featured: bool | None = None
    active: bool | None = None


def plan_from_row(row) -> Plan:
    data = dict(row)
    data["id"] = str(data["id"])
    return Plan.model_validate(data)
