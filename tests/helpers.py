# -*- coding: utf-8 -*-
"""Shared fixtures for the unittest suites."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

JWT_SECRET = "test-secret"


def load_app(tmp: Path):
    """Import the app against a fresh local store."""
    os.environ["NUTRITRACK_SQLITE_PATH"] = str(tmp / "nutritrack.db")
    os.environ["JWT_SECRET"] = JWT_SECRET
    os.environ["RECOMMENDATION_SCHEDULE_ENABLED"] = "0"
    os.environ["NUTRITRACK_LOG_LEVEL"] = "WARNING"
    os.environ.pop("OPENAI_API_KEY", None)

    # Ensure settings/app reflect the env vars above.
    for name in list(sys.modules.keys()):
        if name == "nutritrack" or name.startswith("nutritrack."):
            sys.modules.pop(name, None)

    from nutritrack.api import app  # noqa: WPS433 (import inside test for env control)

    return app


def auth_headers(user_id: str, email: Optional[str] = None) -> Dict[str, str]:
    from nutritrack.auth.security import create_access_token

    token = create_access_token(user_id=user_id, email=email or f"{user_id}@example.com")
    return {"Authorization": f"Bearer {token}"}


PROFILE = {
    "first_name": "Jana",
    "age": 31,
    "height_value": 168,
    "height_unit": "cm",
    "weight_value": 70,
    "weight_unit": "kg",
    "target_weight_value": 65,
    "target_weight_unit": "kg",
    "activity_level": "moderate",
    "goal": "lose_fat",
    "calorie_goal_value": 2000,
    "calorie_goal_unit": "kcal",
    "protein_ratio": 30,
    "carbs_ratio": 40,
    "fat_ratio": 30,
    "gender": "female",
}


def food_entry(name: str, calories: float, protein: float, carbs: float, fat: float, **extra: Any) -> Dict[str, Any]:
    entry = {
        "food_name": name,
        "meal_type": "lunch",
        "serving_size": 100,
        "serving_unit": "g",
        "calories": calories,
        "protein": protein,
        "carbs": carbs,
        "fat": fat,
    }
    entry.update(extra)
    return entry


class RecordingDispatcher:
    """Stands in for the push dispatcher; keeps every call."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []

    async def send(self, user_id: str, title: str, body: str, data: Optional[Dict[str, Any]] = None):
        self.calls.append({"user_id": user_id, "title": title, "body": body, "data": data or {}})
