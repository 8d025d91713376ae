# -*- coding: utf-8 -*-
"""Daily diary aggregation.

A diary's consumed totals are always the sum of its food entries. Every entry
create/delete calls :func:`recompute_totals`, which re-scans the entries and
rewrites the totals together with the owner's current macro ratios.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import date
from typing import Iterable, Optional

from fastapi import HTTPException

from ..gateway import ConflictError, Row, TableClient, eq
from ..users.storage import diary_goals, get_profile

logger = logging.getLogger(__name__)

_NUTRIENTS = (
    ("calories", "calories_consumed"),
    ("protein", "protein_consumed_g"),
    ("carbs", "carbs_consumed_g"),
    ("fat", "fat_consumed_g"),
)

# Recomputes of one diary run one at a time within the process.
_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(diary_id: str) -> asyncio.Lock:
    lock = _locks.get(diary_id)
    if lock is None:
        lock = asyncio.Lock()
        _locks[diary_id] = lock
    return lock


def sum_entries(entries: Iterable[Row]) -> dict:
    totals = {column: 0.0 for _, column in _NUTRIENTS}
    for entry in entries:
        for field, column in _NUTRIENTS:
            totals[column] += float(entry.get(field) or 0)
    return {k: round(v, 2) for k, v in totals.items()}


async def recompute_totals(db: TableClient, diary_id: str) -> Row:
    lock = _lock_for(diary_id)
    async with lock:
        diary = await db.select_one("daily_diary", filters=[eq("id", diary_id)])
        if diary is None:
            raise HTTPException(status_code=404, detail="Daily diary not found")

        entries = await db.select(
            "food_diary_entry",
            filters=[eq("day_id", diary_id)],
            columns="calories,protein,carbs,fat",
        )
        values = sum_entries(entries)

        profile = await db.select_one(
            "user_profiles",
            filters=[eq("user_id", diary["user_id"])],
            columns="protein_ratio,carbs_ratio,fat_ratio",
        )
        if profile is not None:
            values.update(
                protein_ratio=profile.get("protein_ratio"),
                carbs_ratio=profile.get("carbs_ratio"),
                fat_ratio=profile.get("fat_ratio"),
            )
        else:
            logger.warning("no profile for diary owner %s; keeping stored ratios", diary["user_id"])

        rows = await db.update("daily_diary", values, filters=[eq("id", diary_id)])
        logger.debug("recomputed diary %s over %d entries", diary_id, len(entries))
        return rows[0] if rows else {**diary, **values}


async def find_daily_diary(db: TableClient, user_id: str, day: date) -> Optional[Row]:
    return await db.select_one(
        "daily_diary",
        filters=[eq("user_id", user_id), eq("day_date", day.isoformat())],
    )


async def get_or_create_daily_diary(db: TableClient, user_id: str, day: date) -> Row:
    diary = await find_daily_diary(db, user_id, day)
    if diary is not None:
        return diary

    profile = await get_profile(db, user_id)
    payload = {
        "user_id": user_id,
        "day_date": day.isoformat(),
        "calories_consumed": 0,
        "calories_burned": 0,
        "protein_consumed_g": 0,
        "carbs_consumed_g": 0,
        "fat_consumed_g": 0,
        **diary_goals(profile),
    }
    try:
        return await db.insert_one("daily_diary", payload)
    except ConflictError:
        # Lost a first-access race; the unique (user_id, day_date) key kept one row.
        diary = await find_daily_diary(db, user_id, day)
        if diary is None:
            raise
        return diary
