from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from classifieds.models.utils import blank_to_none, slugify


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    slug: str
    icon: str = ""
    description: str | None = None
    created_at: datetime | None = None


class CategoryCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Annotated[str, Field(min_length=1, max_length=100)]
    slug: Annotated[str, Field(max_length=120)] | None = None
    icon: Annotated[str, Field(max_length=20)] = ""
    description: Annotated[str, Field(max_length=500)] | None = None

    @field_validator("name", "icon", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("slug", "description", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        return blank_to_none(value)

    def to_record(self) -> dict:
        """Row to write; a blank slug is derived from the name"""
        return {
            "name": self.name,
            "slug": self.slug or slugify(self.name),
            "icon": self.icon,
            "description": self.description,
        }


def category_from_row(row) -> Category:
    data = dict(row)
    data["id"] = str(data["id"])
    return Category.model_validate(data)
