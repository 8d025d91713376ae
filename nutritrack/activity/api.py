# -*- coding: utf-8 -*-
"""Activity diary — API endpoints (mounted under ``/diary/activity``)."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import get_current_user
from ..dates import parse_day
from ..deps import get_db
from ..gateway import TableClient
from .models import ActivityDiary, ActivityDiarySaveRequest
from .storage import activity_diary_for_day, get_activity_diary, list_activity_diaries, save_activity_diary

router = APIRouter(prefix="/diary/activity", tags=["Activity"])


@router.get("", response_model=List[ActivityDiary], summary="All workout sessions, newest first")
async def read_activity_diaries(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await list_activity_diaries(db, user["id"])


@router.get("/date", response_model=Optional[ActivityDiary], summary="The session of a day or null")
async def read_activity_diary_by_date(
    date: str = Query(..., description="YYYY-MM-DD"),
    user: dict = Depends(get_current_user),
    db: TableClient = Depends(get_db),
):
    try:
        day = parse_day(date)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid date: {date}") from exc
    return await activity_diary_for_day(db, user["id"], day)


@router.get("/{diary_id}", response_model=ActivityDiary, summary="One workout session with its entries")
async def read_activity_diary(diary_id: str, user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await get_activity_diary(db, user["id"], diary_id)


@router.post("", response_model=ActivityDiary, summary="Create or update a workout session")
async def save_activity(
    request: ActivityDiarySaveRequest,
    user: dict = Depends(get_current_user),
    db: TableClient = Depends(get_db),
):
    return await save_activity_diary(db, user["id"], request.model_dump(mode="json"))
