# This file defines the entity models served by the catalog resources.
# Field names match the table columns so rows validate directly into entities.

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    name: str = Field(min_length=1, max_length=120)


class Widget(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    name: str = Field(min_length=1, max_length=120)
    color: str = ""
    price: float = Field(default=0.0, ge=0)
    active: bool = True
    description: str | None = None
    category_id: int | None = None
