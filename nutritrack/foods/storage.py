# -*- coding: utf-8 -*-
"""Foods — custom food creation and localized search.

The hosted store has no multi-table transaction, so food creation records a
compensating delete after every successful write and replays them in reverse
when a later step fails.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from fastapi import HTTPException

from ..gateway import Filter, Row, StorageError, TableClient, eq, ilike, in_

logger = logging.getLogger(__name__)

KJ_PER_KCAL = 4.184


def _float(value: Optional[str]) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _num_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    number = float(value)
    return str(int(number)) if number.is_integer() else repr(number)


class Saga:
    """Compensating actions collected during a multi-step write."""

    def __init__(self, db: TableClient) -> None:
        self._db = db
        self._undo: List[Callable[[], Awaitable[Any]]] = []

    def on_rollback(self, table: str, filters: Sequence[Filter]) -> None:
        async def _undo() -> Any:
            return await self._db.delete(table, filters=filters)

        self._undo.append(_undo)

    async def rollback(self) -> None:
        while self._undo:
            action = self._undo.pop()
            try:
                await action()
            except StorageError as exc:
                logger.error("compensating delete failed: %s", exc.message)


async def create_food(db: TableClient, user_id: str, data: Dict[str, Any], lang: str) -> Row:
    category = await db.select_one("food_categories", filters=[eq("slug", data["category"])], columns="id,slug")
    if category is None:
        raise HTTPException(status_code=400, detail=f"Unknown food category: {data['category']}")

    kcal = float(data["calories"])
    saga = Saga(db)
    try:
        food = await db.insert_one(
            "foods",
            {
                "food_category_id": category["id"],
                "food_name": data["name"],
                "energy_kcal": kcal,
                "energy_kj": round(kcal * KJ_PER_KCAL, 3),
                "protein_g": float(data["protein"]),
                "carbs_g": float(data["carbs"]),
                "fat_g": float(data["fats"]),
                "fiber_g": _float(data.get("fiber")),
                "sugar_g": _float(data.get("sugar")),
                "salt_g": _float(data.get("salt")),
                "barcode": data.get("barcode"),
                "created_by": user_id,
                "is_custom": True,
            },
        )
        saga.on_rollback("foods", [eq("id", food["id"])])

        await db.insert_one(
            "food_translations",
            {"food_id": food["id"], "locale": lang, "name": data["name"], "brand": data.get("brand")},
        )
        saga.on_rollback("food_translations", [eq("food_id", food["id"])])

        portion = await db.insert_one(
            "food_portions",
            {"food_id": food["id"], "portion_weight_g": float(data["serving_size_value"])},
        )
        saga.on_rollback("food_portions", [eq("id", portion["id"])])

        await db.insert_one(
            "food_portions_translations",
            {
                "food_portion_id": portion["id"],
                "locale": lang,
                "name": f"{data['serving_size_value']} {data['serving_size_unit']}",
            },
        )
    except StorageError as exc:
        logger.error("food creation failed, rolling back: %s", exc.message)
        await saga.rollback()
        raise

    return {
        "id": food["id"],
        "created_at": food.get("created_at"),
        "updated_at": food.get("updated_at") or food.get("created_at"),
        "name": data["name"],
        "category": category["slug"],
        "serving_size_value": data["serving_size_value"],
        "serving_size_unit": data["serving_size_unit"],
        "brand": data.get("brand"),
        "barcode": data.get("barcode"),
        "calories": data["calories"],
        "fats": data["fats"],
        "carbs": data["carbs"],
        "sugar": data.get("sugar"),
        "fiber": data.get("fiber"),
        "protein": data["protein"],
        "salt": data.get("salt"),
    }


async def search_foods(db: TableClient, lang: str, *, query: str = "", page: int = 1, limit: int = 10) -> Dict[str, Any]:
    filters = [eq("locale", lang)]
    if query.strip():
        filters.append(ilike("name", f"%{query.strip()}%"))
    # Paged in the store; follow-up lookups only carry this page's ids.
    total = await db.count("food_translations", filters=filters)
    translations = await db.select(
        "food_translations",
        filters=filters,
        columns="food_id,name,brand",
        order="created_at",
        desc=True,
        limit=limit,
        offset=(page - 1) * limit,
    )
    by_food: Dict[str, Row] = {}
    for t in translations:
        by_food.setdefault(t["food_id"], t)

    foods: List[Row] = []
    if by_food:
        found = {f["id"]: f for f in await db.select("foods", filters=[in_("id", list(by_food))])}
        foods = [found[food_id] for food_id in by_food if food_id in found]

    food_ids = [f["id"] for f in foods]
    categories: Dict[str, str] = {}
    portions: Dict[str, Row] = {}
    portion_names: Dict[str, str] = {}
    if foods:
        category_ids = sorted({f["food_category_id"] for f in foods if f.get("food_category_id")})
        for c in await db.select("food_categories", filters=[in_("id", category_ids)], columns="id,slug"):
            categories[c["id"]] = c["slug"]
        for p in await db.select("food_portions", filters=[in_("food_id", food_ids)], order="created_at"):
            portions.setdefault(p["food_id"], p)
        if portions:
            rows = await db.select(
                "food_portions_translations",
                filters=[in_("food_portion_id", [p["id"] for p in portions.values()]), eq("locale", lang)],
                columns="food_portion_id,name",
            )
            for r in rows:
                portion_names.setdefault(r["food_portion_id"], r["name"])

    items = []
    for food in foods:
        translation = by_food[food["id"]]
        portion = portions.get(food["id"])
        serving_value = ""
        serving_unit = "g"
        if portion is not None:
            serving_value = _num_str(portion["portion_weight_g"]) or ""
            name = portion_names.get(portion["id"]) or ""
            if "ml" in name.lower():
                serving_unit = "ml"
        items.append(
            {
                "id": food["id"],
                "created_at": food.get("created_at"),
                "updated_at": food.get("updated_at"),
                "name": translation.get("name"),
                "category": categories.get(food.get("food_category_id")),
                "serving_size_value": serving_value,
                "serving_size_unit": serving_unit,
                "brand": translation.get("brand"),
                "barcode": food.get("barcode"),
                "calories": _num_str(food.get("energy_kcal")),
                "fats": _num_str(food.get("fat_g")),
                "carbs": _num_str(food.get("carbs_g")),
                "sugar": _num_str(food.get("sugar_g")),
                "fiber": _num_str(food.get("fiber_g")),
                "protein": _num_str(food.get("protein_g")),
                "salt": _num_str(food.get("salt_g")),
            }
        )

    return {
        "items": items,
        "total_count": total,
        "page": page,
        "limit": limit,
        "has_more": total > page * limit,
    }
