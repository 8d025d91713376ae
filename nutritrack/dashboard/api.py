# -*- coding: utf-8 -*-
"""Dashboard — one response built from concurrent reads."""

from __future__ import annotations

import asyncio
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..activity.models import ActivityDiaryEntry
from ..activity.storage import recent_activity_entries
from ..auth.security import get_current_user
from ..dates import days_ago_iso
from ..deps import get_db
from ..diary.models import FoodDiaryEntry
from ..diary.storage import recent_food_entries
from ..gateway import TableClient
from ..recommendations.models import AiRecommendation
from ..recommendations.storage import list_recommendations
from ..steps.models import StepMeasurement
from ..steps.storage import list_step_measurements
from ..users.models import UserWeight
from ..users.storage import list_weights

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


class DashboardResponse(BaseModel):
    recent_food_entries: List[FoodDiaryEntry] = []
    recent_activity_entries: List[ActivityDiaryEntry] = []
    weight_history_7days: List[UserWeight] = []
    weight_history_30days: List[UserWeight] = []
    steps_history_7days: List[StepMeasurement] = []
    steps_history_30days: List[StepMeasurement] = []
    ai_recommendations: List[AiRecommendation] = []


@router.get("", response_model=DashboardResponse, summary="Aggregated home screen data")
async def read_dashboard(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    user_id = user["id"]
    week, month = days_ago_iso(7), days_ago_iso(30)
    (
        food_entries,
        activity_entries,
        weights_7,
        weights_30,
        steps_7,
        steps_30,
        recommendations,
    ) = await asyncio.gather(
        recent_food_entries(db, user_id),
        recent_activity_entries(db, user_id),
        list_weights(db, user_id, since=week),
        list_weights(db, user_id, since=month),
        list_step_measurements(db, user_id, since=week),
        list_step_measurements(db, user_id, since=month),
        list_recommendations(db, user_id),
    )
    return DashboardResponse(
        recent_food_entries=food_entries,
        recent_activity_entries=activity_entries,
        weight_history_7days=weights_7,
        weight_history_30days=weights_30,
        steps_history_7days=steps_7,
        steps_history_30days=steps_30,
        ai_recommendations=recommendations,
    )
