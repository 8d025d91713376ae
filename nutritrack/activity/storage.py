# -*- coding: utf-8 -*-
"""Activity diary persistence.

Saving a session reconciles its entries against the request as a whole set:
requested entries are updated or inserted, stored entries missing from the
request are deleted.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from ..dates import day_bounds, to_utc_iso
from ..gateway import Row, TableClient, eq, gte, in_, lt

logger = logging.getLogger(__name__)


def _entry_values(entry: Dict[str, Any], position: int) -> Dict[str, Any]:
    return {
        "exercise_id": entry["exercise_id"],
        "sets_json": entry.get("sets_json") or [],
        "est_kcal": entry.get("est_kcal"),
        "notes": entry.get("notes"),
        "position": position,
    }


async def _entries_for(db: TableClient, diary_ids: List[str]) -> Dict[str, List[Row]]:
    grouped: Dict[str, List[Row]] = defaultdict(list)
    if not diary_ids:
        return grouped
    rows = await db.select("activity_diary_entry", filters=[in_("diary_id", diary_ids)], order="position")
    for row in rows:
        grouped[row["diary_id"]].append(row)
    return grouped


async def _with_entries(db: TableClient, diaries: List[Row]) -> List[Row]:
    grouped = await _entries_for(db, [d["id"] for d in diaries])
    return [{**d, "entries": grouped.get(d["id"], [])} for d in diaries]


async def get_activity_diary(db: TableClient, user_id: str, diary_id: str) -> Row:
    diary = await db.select_one("activity_diary", filters=[eq("id", diary_id), eq("user_id", user_id)])
    if diary is None:
        raise HTTPException(status_code=404, detail="Activity diary not found")
    return (await _with_entries(db, [diary]))[0]


async def list_activity_diaries(db: TableClient, user_id: str) -> List[Row]:
    diaries = await db.select("activity_diary", filters=[eq("user_id", user_id)], order="start_at", desc=True)
    return await _with_entries(db, diaries)


async def activity_diary_for_day(db: TableClient, user_id: str, day: date) -> Optional[Row]:
    start, end = day_bounds(day)
    diary = await db.select_one(
        "activity_diary",
        filters=[eq("user_id", user_id), gte("start_at", start), lt("start_at", end)],
        order="start_at",
    )
    if diary is None:
        return None
    return (await _with_entries(db, [diary]))[0]


async def reconcile_entries(
    db: TableClient, user_id: str, diary_id: str, requested: List[Dict[str, Any]]
) -> Dict[str, int]:
    stored = await db.select("activity_diary_entry", filters=[eq("diary_id", diary_id)], columns="id")
    stored_ids = {row["id"] for row in stored}

    kept: set[str] = set()
    inserts: List[Dict[str, Any]] = []
    updated = 0
    for position, entry in enumerate(requested):
        entry_id = entry.get("id")
        values = _entry_values(entry, position)
        if entry_id and entry_id in stored_ids and entry_id not in kept:
            await db.update(
                "activity_diary_entry",
                values,
                filters=[eq("id", entry_id), eq("diary_id", diary_id)],
            )
            kept.add(entry_id)
            updated += 1
        else:
            # Unknown ids are treated as new entries; ids are assigned by the store.
            inserts.append({**values, "user_id": user_id, "diary_id": diary_id})

    if inserts:
        await db.insert("activity_diary_entry", inserts)

    stale = sorted(stored_ids - kept)
    if stale:
        await db.delete("activity_diary_entry", filters=[eq("diary_id", diary_id), in_("id", stale)])

    return {"updated": updated, "inserted": len(inserts), "deleted": len(stale)}


async def save_activity_diary(db: TableClient, user_id: str, data: Dict[str, Any]) -> Row:
    try:
        start_at = to_utc_iso(data["start_at"])
        end_at = to_utc_iso(data["end_at"])
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if end_at < start_at:
        raise HTTPException(status_code=400, detail="end_at must not be before start_at")

    values = {
        "start_at": start_at,
        "end_at": end_at,
        "bodyweight_kg": data.get("bodyweight_kg"),
        "notes": data.get("notes"),
    }
    diary_id = data.get("id")
    if diary_id:
        rows = await db.update("activity_diary", values, filters=[eq("id", diary_id), eq("user_id", user_id)])
        if not rows:
            raise HTTPException(status_code=404, detail="Activity diary not found")
    else:
        diary_id = (await db.insert_one("activity_diary", {**values, "user_id": user_id}))["id"]

    stats = await reconcile_entries(db, user_id, diary_id, data.get("entries") or [])
    logger.info(
        "activity diary %s saved: %d updated, %d inserted, %d deleted",
        diary_id,
        stats["updated"],
        stats["inserted"],
        stats["deleted"],
    )
    return await get_activity_diary(db, user_id, diary_id)


async def recent_activity_entries(db: TableClient, user_id: str, *, limit: int = 3) -> List[Row]:
    return await db.select(
        "activity_diary_entry",
        filters=[eq("user_id", user_id)],
        order="created_at",
        desc=True,
        limit=limit,
    )
