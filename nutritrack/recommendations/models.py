# -*- coding: utf-8 -*-
"""AI recommendations — Pydantic models."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class AiRecommendation(BaseModel):
    id: str
    user_id: str
    analyzed_date: str
    prompt_version: int
    prompt: str
    response: Optional[str] = None
    model_used: Optional[str] = None
    error_message: Optional[str] = None
    viewed: bool = False
    created_at: str


class MarkViewedRequest(BaseModel):
    id: str = Field(..., min_length=1)


class PipelineRunResponse(BaseModel):
    success: bool = True
    message: str
    analyzed_date: str
    processed: List[str] = []
    skipped: List[str] = []
    failed: List[str] = []
