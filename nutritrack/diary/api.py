# -*- coding: utf-8 -*-
"""Diary — API endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import get_current_user
from ..dates import parse_day, utc_now
from ..deps import get_db
from ..gateway import TableClient
from .models import DailyDiaryResponse, DeleteResponse, FoodDiaryEntry, FoodDiaryEntryCreateRequest
from .storage import create_food_entry, delete_food_entry, get_daily_diary

router = APIRouter(prefix="/diary", tags=["Diary"])


def _day_or_400(value: str | None) -> date:
    if not value:
        return utc_now().date()
    try:
        return parse_day(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}") from exc


@router.get("", response_model=DailyDiaryResponse, summary="Daily diary with its food entries")
async def read_diary(
    date: str | None = Query(default=None, description="YYYY-MM-DD, defaults to today (UTC)"),
    user: dict = Depends(get_current_user),
    db: TableClient = Depends(get_db),
):
    return await get_daily_diary(db, user["id"], _day_or_400(date))


@router.post("/entries", response_model=FoodDiaryEntry, summary="Add a food entry")
async def add_entry(
    request: FoodDiaryEntryCreateRequest,
    user: dict = Depends(get_current_user),
    db: TableClient = Depends(get_db),
):
    day = _day_or_400(request.entry_date)
    return await create_food_entry(db, user["id"], day, request.model_dump(mode="json"))


@router.delete("/entries/{entry_id}", response_model=DeleteResponse, summary="Delete a food entry")
async def remove_entry(entry_id: str, user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    await delete_food_entry(db, user["id"], entry_id)
    return DeleteResponse(success=True)
