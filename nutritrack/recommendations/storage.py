# -*- coding: utf-8 -*-
"""AI recommendation persistence. Rows are immutable except ``viewed``."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import HTTPException

from ..gateway import Row, TableClient, eq


async def list_recommendations(db: TableClient, user_id: str) -> List[Row]:
    return await db.select("ai_recommendations", filters=[eq("user_id", user_id)], order="created_at", desc=True)


async def mark_viewed(db: TableClient, user_id: str, recommendation_id: str) -> Row:
    rows = await db.update(
        "ai_recommendations",
        {"viewed": True},
        filters=[eq("id", recommendation_id), eq("user_id", user_id)],
    )
    if not rows:
        raise HTTPException(status_code=404, detail="AI recommendation not found")
    return rows[0]


async def find_recommendation(db: TableClient, user_id: str, analyzed_date: date) -> Optional[Row]:
    return await db.select_one(
        "ai_recommendations",
        filters=[eq("user_id", user_id), eq("analyzed_date", analyzed_date.isoformat())],
    )


async def create_recommendation(
    db: TableClient,
    *,
    user_id: str,
    analyzed_date: date,
    prompt_version: int,
    prompt: str,
    response: str,
    model_used: str,
    error_message: Optional[str] = None,
) -> Row:
    return await db.insert_one(
        "ai_recommendations",
        {
            "user_id": user_id,
            "analyzed_date": analyzed_date.isoformat(),
            "prompt_version": prompt_version,
            "prompt": prompt,
            "response": response,
            "model_used": model_used,
            "error_message": error_message,
            "viewed": False,
        },
    )
