# -*- coding: utf-8 -*-
"""Users — profile and weight persistence.

Every query is scoped by an explicit ``user_id``; the profile table is never
read as an ambient single row.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from ..dates import to_utc_iso, utc_now
from ..gateway import ConflictError, Row, TableClient, eq, gte

logger = logging.getLogger(__name__)

KJ_PER_KCAL = 4.184
KG_PER_LB = 0.45359237

_GOAL_FIELDS = ("calorie_goal_value", "calorie_goal_unit", "protein_ratio", "carbs_ratio", "fat_ratio")


def calorie_goal_kcal(value: Optional[float], unit: Optional[str]) -> float:
    kcal = float(value or 0)
    if unit == "kj":
        kcal = kcal / KJ_PER_KCAL
    return kcal


def derive_gram_goals(profile: Dict[str, Any]) -> Dict[str, float]:
    """Gram targets from the calorie goal and ratios (4 kcal/g protein+carbs, 9 kcal/g fat)."""
    kcal = calorie_goal_kcal(profile.get("calorie_goal_value"), profile.get("calorie_goal_unit"))

    def grams(ratio: Any, kcal_per_g: float) -> float:
        return round(kcal * float(ratio or 0) / 100.0 / kcal_per_g, 1)

    return {
        "protein_goal_g": grams(profile.get("protein_ratio"), 4.0),
        "carbs_goal_g": grams(profile.get("carbs_ratio"), 4.0),
        "fat_goal_g": grams(profile.get("fat_ratio"), 9.0),
    }


def diary_goals(profile: Dict[str, Any]) -> Dict[str, Any]:
    """Goal + ratio columns a daily diary carries for this profile."""
    return {
        "calorie_goal": round(calorie_goal_kcal(profile.get("calorie_goal_value"), profile.get("calorie_goal_unit")), 1),
        "protein_goal_g": profile.get("protein_goal_g") or 0,
        "carbs_goal_g": profile.get("carbs_goal_g") or 0,
        "fat_goal_g": profile.get("fat_goal_g") or 0,
        "protein_ratio": profile.get("protein_ratio"),
        "carbs_ratio": profile.get("carbs_ratio"),
        "fat_ratio": profile.get("fat_ratio"),
    }


# ---------- profiles ----------


async def find_profile(db: TableClient, user_id: str) -> Optional[Row]:
    return await db.select_one("user_profiles", filters=[eq("user_id", user_id)])


async def get_profile(db: TableClient, user_id: str) -> Row:
    profile = await find_profile(db, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User profile not found")
    return profile


async def create_profile(db: TableClient, user_id: str, email: Optional[str], data: Dict[str, Any]) -> Row:
    payload = {k: v for k, v in data.items() if v is not None}
    payload.update(derive_gram_goals(payload))
    payload["user_id"] = user_id
    payload["email"] = email
    try:
        return await db.insert_one("user_profiles", payload)
    except ConflictError as exc:
        raise HTTPException(status_code=400, detail="User profile already exists") from exc


async def update_profile(db: TableClient, user_id: str, changes: Dict[str, Any]) -> Row:
    """Apply a partial update; goal or ratio changes are rewritten into every diary of the user."""
    current = await get_profile(db, user_id)
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        return current

    merged = {**current, **changes}
    ratio_sum = sum(float(merged.get(k) or 0) for k in ("protein_ratio", "carbs_ratio", "fat_ratio"))
    if ratio_sum > 100:
        raise HTTPException(
            status_code=400,
            detail=f"Sum of macronutrient ratios must not exceed 100 (got {ratio_sum:g})",
        )

    goals_changed = any(k in changes for k in _GOAL_FIELDS)
    if goals_changed:
        changes.update(derive_gram_goals(merged))
        merged.update(changes)

    rows = await db.update("user_profiles", changes, filters=[eq("user_id", user_id)])
    if not rows:
        raise HTTPException(status_code=404, detail="User profile not found")
    updated = rows[0]

    if goals_changed:
        diaries = await db.update("daily_diary", diary_goals(updated), filters=[eq("user_id", user_id)])
        logger.info("profile goals changed for user %s; rewrote %d daily diaries", user_id, len(diaries))
    return updated


async def profile_with_current_weight(db: TableClient, profile: Row) -> Row:
    """The latest weight measurement, when present, is the profile's current weight."""
    latest = await latest_weight(db, profile["user_id"])
    if latest is None:
        return profile
    return {**profile, "weight_value": latest["weight_value"], "weight_unit": latest["weight_unit"]}


# ---------- weights ----------


def to_kg(value: float, unit: str) -> float:
    kg = float(value) * KG_PER_LB if unit == "lbs" else float(value)
    return round(kg, 2)


async def add_weight(
    db: TableClient,
    user_id: str,
    *,
    weight_value: float,
    weight_unit: str,
    measured_at: Optional[str] = None,
    source: Optional[str] = None,
) -> Row:
    try:
        measured = to_utc_iso(measured_at) if measured_at else utc_now().isoformat()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return await db.insert_one(
        "user_weights",
        {
            "user_id": user_id,
            "weight_value": weight_value,
            "weight_unit": weight_unit,
            "weight_kg": to_kg(weight_value, weight_unit),
            "measured_at": measured,
            "source": source,
        },
    )


async def list_weights(db: TableClient, user_id: str, *, since: Optional[str] = None) -> List[Row]:
    filters = [eq("user_id", user_id)]
    if since:
        filters.append(gte("measured_at", since))
    return await db.select("user_weights", filters=filters, order="measured_at", desc=True)


async def latest_weight(db: TableClient, user_id: str) -> Optional[Row]:
    return await db.select_one("user_weights", filters=[eq("user_id", user_id)], order="measured_at", desc=True)
