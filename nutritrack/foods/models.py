# -*- coding: utf-8 -*-
"""Foods — Pydantic models.

The mobile client sends and receives numeric food values as strings and uses
camelCase for the serving size fields.
"""

from __future__ import annotations

import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..diary.models import ServingUnit


def _numeric(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"not a number: {value!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value!r}")
    return value


class FoodCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=300)
    category: str = Field(..., min_length=1, description="Food category slug")
    serving_size_value: str = Field(..., alias="servingSizeValue")
    serving_size_unit: ServingUnit = Field(..., alias="servingSizeUnit")
    brand: Optional[str] = Field(None, max_length=300)
    barcode: Optional[str] = Field(None, max_length=64)
    calories: str
    fats: str
    carbs: str
    protein: str
    sugar: Optional[str] = None
    fiber: Optional[str] = None
    salt: Optional[str] = None

    @field_validator("serving_size_value", "calories", "fats", "carbs", "protein")
    @classmethod
    def _required_number(cls, v: str) -> str:
        if v is None or v == "":
            raise ValueError("value is required")
        return _numeric(v)

    @field_validator("sugar", "fiber", "salt")
    @classmethod
    def _optional_number(cls, v: Optional[str]) -> Optional[str]:
        return _numeric(v)


class FoodResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    serving_size_value: str = Field("", serialization_alias="servingSizeValue")
    serving_size_unit: ServingUnit = Field(ServingUnit.g, serialization_alias="servingSizeUnit")
    brand: Optional[str] = None
    barcode: Optional[str] = None
    calories: Optional[str] = None
    fats: Optional[str] = None
    carbs: Optional[str] = None
    sugar: Optional[str] = None
    fiber: Optional[str] = None
    protein: Optional[str] = None
    salt: Optional[str] = None


class FoodSearchResponse(BaseModel):
    items: List[FoodResponse] = []
    total_count: int = Field(0, serialization_alias="totalCount")
    page: int
    limit: int
    has_more: bool = Field(False, serialization_alias="hasMore")
