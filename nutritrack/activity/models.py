# -*- coding: utf-8 -*-
"""Activity diary — Pydantic models."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ExerciseSet(BaseModel):
    reps: int = Field(..., ge=0)
    weight_kg: float = Field(0.0, ge=0)


class ActivityDiaryEntryRequest(BaseModel):
    id: Optional[str] = Field(None, description="Existing entry id; omitted for new entries")
    exercise_id: str = Field(..., min_length=1)
    sets_json: List[ExerciseSet] = Field(default_factory=list)
    est_kcal: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class ActivityDiarySaveRequest(BaseModel):
    id: Optional[str] = Field(None, description="Existing session id; omitted to create one")
    start_at: str = Field(..., description="ISO8601 timestamp")
    end_at: str = Field(..., description="ISO8601 timestamp")
    bodyweight_kg: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=2000)
    entries: List[ActivityDiaryEntryRequest] = Field(default_factory=list)


class ActivityDiaryEntry(BaseModel):
    id: str
    diary_id: str
    exercise_id: str
    sets_json: List[ExerciseSet] = []
    est_kcal: Optional[float] = None
    notes: Optional[str] = None
    position: int = 0
    created_at: str


class ActivityDiary(BaseModel):
    id: str
    user_id: str
    start_at: str
    end_at: str
    bodyweight_kg: Optional[float] = None
    notes: Optional[str] = None
    created_at: str
    updated_at: str
    entries: List[ActivityDiaryEntry] = []
