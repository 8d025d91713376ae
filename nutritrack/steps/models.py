# -*- coding: utf-8 -*-
"""Steps — Pydantic models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class StepMeasurementCreateRequest(BaseModel):
    start_time: str = Field(..., description="ISO8601 timestamp")
    end_time: str = Field(..., description="ISO8601 timestamp")
    step_count: int = Field(..., ge=0)
    source: Optional[str] = Field(None, max_length=64)


class StepMeasurement(BaseModel):
    id: str
    user_id: str
    start_time: str
    end_time: str
    step_count: int
    source: Optional[str] = None
    created_at: str
    updated_at: str
