# -*- coding: utf-8 -*-
"""Users — Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class HeightUnit(str, Enum):
    cm = "cm"
    inch = "inch"


class WeightUnit(str, Enum):
    kg = "kg"
    lbs = "lbs"


class ActivityLevel(str, Enum):
    sedentary = "sedentary"
    light = "light"
    moderate = "moderate"
    high = "high"
    extreme = "extreme"


class ExperienceLevel(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class Goal(str, Enum):
    lose_fat = "lose_fat"
    maintain_weight = "maintain_weight"
    gain_muscle = "gain_muscle"


class CalorieUnit(str, Enum):
    kcal = "kcal"
    kj = "kj"


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class _MacroRatios(BaseModel):
    protein_ratio: Optional[float] = Field(None, ge=0, le=100)
    carbs_ratio: Optional[float] = Field(None, ge=0, le=100)
    fat_ratio: Optional[float] = Field(None, ge=0, le=100)

    @model_validator(mode="after")
    def _ratios_fit(self):
        total = sum(r for r in (self.protein_ratio, self.carbs_ratio, self.fat_ratio) if r is not None)
        if total > 100:
            raise ValueError(f"Sum of macronutrient ratios must not exceed 100 (got {total:g})")
        return self


class UserProfileCreateRequest(_MacroRatios):
    onboarding_completed: Optional[bool] = None
    first_name: Optional[str] = Field(None, max_length=200)
    last_name: Optional[str] = Field(None, max_length=200)
    age: int = Field(..., ge=0, le=120)
    height_value: float = Field(..., gt=0)
    height_unit: HeightUnit
    weight_value: float = Field(..., gt=0)
    weight_unit: WeightUnit
    target_weight_value: float = Field(..., gt=0)
    target_weight_unit: WeightUnit
    activity_level: ActivityLevel
    experience_level: Optional[ExperienceLevel] = None
    goal: Goal
    calorie_goal_value: float = Field(..., ge=0)
    calorie_goal_unit: CalorieUnit
    protein_ratio: float = Field(..., ge=0, le=100)
    carbs_ratio: float = Field(..., ge=0, le=100)
    fat_ratio: float = Field(..., ge=0, le=100)
    gender: Gender
    notifications_enabled: Optional[bool] = None


class UserProfileUpdateRequest(_MacroRatios):
    onboarding_completed: Optional[bool] = None
    first_name: Optional[str] = Field(None, max_length=200)
    last_name: Optional[str] = Field(None, max_length=200)
    age: Optional[int] = Field(None, ge=0, le=120)
    height_value: Optional[float] = Field(None, gt=0)
    height_unit: Optional[HeightUnit] = None
    weight_value: Optional[float] = Field(None, gt=0)
    weight_unit: Optional[WeightUnit] = None
    target_weight_value: Optional[float] = Field(None, gt=0)
    target_weight_unit: Optional[WeightUnit] = None
    activity_level: Optional[ActivityLevel] = None
    experience_level: Optional[ExperienceLevel] = None
    goal: Optional[Goal] = None
    calorie_goal_value: Optional[float] = Field(None, ge=0)
    calorie_goal_unit: Optional[CalorieUnit] = None
    gender: Optional[Gender] = None
    notifications_enabled: Optional[bool] = None


class UserProfileResponse(BaseModel):
    id: str
    user_id: str
    email: Optional[str] = None
    created_at: str
    updated_at: str
    onboarding_completed: Optional[bool] = False
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    age: Optional[int] = None
    height_value: Optional[float] = None
    height_unit: Optional[HeightUnit] = None
    weight_value: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None
    target_weight_value: Optional[float] = None
    target_weight_unit: Optional[WeightUnit] = None
    activity_level: Optional[ActivityLevel] = None
    experience_level: Optional[ExperienceLevel] = None
    goal: Optional[Goal] = None
    calorie_goal_value: Optional[float] = None
    calorie_goal_unit: Optional[CalorieUnit] = None
    protein_ratio: Optional[float] = None
    carbs_ratio: Optional[float] = None
    fat_ratio: Optional[float] = None
    protein_goal_g: Optional[float] = None
    carbs_goal_g: Optional[float] = None
    fat_goal_g: Optional[float] = None
    gender: Optional[Gender] = None
    notifications_enabled: Optional[bool] = True


class UserWeightCreateRequest(BaseModel):
    weight_value: float = Field(..., gt=0)
    weight_unit: WeightUnit
    measured_at: Optional[str] = Field(None, description="ISO8601 timestamp, defaults to now")
    source: Optional[str] = Field(None, max_length=64)


class UserWeight(BaseModel):
    id: str
    user_id: str
    weight_value: float
    weight_unit: WeightUnit
    weight_kg: float
    measured_at: str
    source: Optional[str] = None
    created_at: str
