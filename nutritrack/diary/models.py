# -*- coding: utf-8 -*-
"""Diary — Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class MealType(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snack = "snack"


class ServingUnit(str, Enum):
    g = "g"
    ml = "ml"


class FoodDiaryEntryCreateRequest(BaseModel):
    food_id: Optional[str] = None
    food_name: str = Field(..., min_length=1, max_length=300)
    brand: Optional[str] = Field("", max_length=300)
    meal_type: MealType
    serving_size: float = Field(..., ge=0)
    serving_unit: ServingUnit
    calories: float = Field(..., ge=0)
    protein: float = Field(..., ge=0)
    carbs: float = Field(..., ge=0)
    fat: float = Field(..., ge=0)
    entry_date: Optional[str] = Field(None, description="YYYY-MM-DD or ISO8601; defaults to today (UTC)")


class FoodDiaryEntry(BaseModel):
    id: str
    user_id: str
    day_id: str
    food_id: Optional[str] = None
    food_name: str
    brand: Optional[str] = None
    meal_type: MealType
    serving_size: float
    serving_unit: ServingUnit
    calories: float
    protein: float
    carbs: float
    fat: float
    created_at: str
    updated_at: str


class DailyDiaryResponse(BaseModel):
    id: str
    user_id: str
    day_date: str
    calorie_goal: float = 0
    calories_consumed: float = 0
    calories_burned: float = 0
    protein_goal_g: float = 0
    carbs_goal_g: float = 0
    fat_goal_g: float = 0
    protein_consumed_g: float = 0
    carbs_consumed_g: float = 0
    fat_consumed_g: float = 0
    protein_ratio: Optional[float] = None
    carbs_ratio: Optional[float] = None
    fat_ratio: Optional[float] = None
    created_at: str
    updated_at: str
    food_entries: List[FoodDiaryEntry] = []


class DeleteResponse(BaseModel):
    success: bool = True
