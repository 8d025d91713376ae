# -*- coding: utf-8 -*-
"""Diary — food entry persistence."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List

from fastapi import HTTPException

from ..gateway import Row, TableClient, eq
from .aggregator import get_or_create_daily_diary, recompute_totals


async def list_food_entries(db: TableClient, diary_id: str) -> List[Row]:
    return await db.select("food_diary_entry", filters=[eq("day_id", diary_id)], order="created_at")


async def get_daily_diary(db: TableClient, user_id: str, day: date) -> Row:
    diary = await get_or_create_daily_diary(db, user_id, day)
    return {**diary, "food_entries": await list_food_entries(db, diary["id"])}


async def create_food_entry(db: TableClient, user_id: str, day: date, data: Dict[str, Any]) -> Row:
    diary = await get_or_create_daily_diary(db, user_id, day)
    entry = await db.insert_one(
        "food_diary_entry",
        {
            "user_id": user_id,
            "day_id": diary["id"],
            "food_id": data.get("food_id"),
            "food_name": data["food_name"],
            "brand": data.get("brand") or "",
            "meal_type": data["meal_type"],
            "serving_size": data["serving_size"],
            "serving_unit": data["serving_unit"],
            "calories": data["calories"],
            "protein": data["protein"],
            "carbs": data["carbs"],
            "fat": data["fat"],
        },
    )
    await recompute_totals(db, diary["id"])
    return entry


async def delete_food_entry(db: TableClient, user_id: str, entry_id: str) -> None:
    entry = await db.select_one(
        "food_diary_entry",
        filters=[eq("id", entry_id), eq("user_id", user_id)],
        columns="id,day_id",
    )
    if entry is None:
        raise HTTPException(status_code=404, detail="Food diary entry not found")
    await db.delete("food_diary_entry", filters=[eq("id", entry_id), eq("user_id", user_id)])
    await recompute_totals(db, entry["day_id"])


async def recent_food_entries(db: TableClient, user_id: str, *, limit: int = 3) -> List[Row]:
    return await db.select(
        "food_diary_entry",
        filters=[eq("user_id", user_id)],
        order="created_at",
        desc=True,
        limit=limit,
    )
