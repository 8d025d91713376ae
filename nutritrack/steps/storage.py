# -*- coding: utf-8 -*-
"""Steps — one measurement row per user and calendar day (UTC)."""

from __future__ import annotations

from typing import List, Optional

from fastapi import HTTPException

from ..dates import day_bounds, parse_iso, to_utc_iso
from ..gateway import Row, TableClient, eq, gte, lt


async def upsert_step_measurement(
    db: TableClient,
    user_id: str,
    *,
    start_time: str,
    end_time: str,
    step_count: int,
    source: Optional[str] = None,
) -> Row:
    start_dt = parse_iso(start_time)
    if start_dt is None:
        raise HTTPException(status_code=400, detail=f"Invalid start_time: {start_time}")
    try:
        end_iso = to_utc_iso(end_time)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    start_iso = to_utc_iso(start_dt)

    day_start, day_end = day_bounds(parse_iso(start_iso).date())
    existing = await db.select_one(
        "step_measurements",
        filters=[eq("user_id", user_id), gte("start_time", day_start), lt("start_time", day_end)],
        order="start_time",
    )
    values = {"start_time": start_iso, "end_time": end_iso, "step_count": step_count, "source": source}
    if existing is not None:
        rows = await db.update("step_measurements", values, filters=[eq("id", existing["id"])])
        if rows:
            return rows[0]
    return await db.insert_one("step_measurements", {**values, "user_id": user_id})


async def list_step_measurements(db: TableClient, user_id: str, *, since: Optional[str] = None) -> List[Row]:
    filters = [eq("user_id", user_id)]
    if since:
        filters.append(gte("start_time", since))
    return await db.select("step_measurements", filters=filters, order="start_time", desc=True)
