# -*- coding: utf-8 -*-
"""AI recommendations — API endpoints and the unauthenticated pipeline trigger."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from ..deps import get_db
from ..gateway import TableClient
from .models import AiRecommendation, MarkViewedRequest, PipelineRunResponse
from .pipeline import run_daily_recommendations
from .storage import list_recommendations, mark_viewed

router = APIRouter(prefix="/ai-recommendations", tags=["AI Recommendations"])
test_router = APIRouter(prefix="/test-ai-recommendations", tags=["Testing"])


@router.get("", response_model=List[AiRecommendation], summary="Recommendations, newest first")
async def read_recommendations(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await list_recommendations(db, user["id"])


@router.post("/viewed", response_model=AiRecommendation, summary="Mark a recommendation as viewed")
async def set_viewed(
    request: MarkViewedRequest,
    user: dict = Depends(get_current_user),
    db: TableClient = Depends(get_db),
):
    return await mark_viewed(db, user["id"], request.id)


@test_router.post("/generate", response_model=PipelineRunResponse, summary="Run the daily pipeline now (testing only)")
async def generate_recommendations():
    report = await run_daily_recommendations()
    return PipelineRunResponse(message="Recommendations generation triggered", **report.as_dict())
