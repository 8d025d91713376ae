# -*- coding: utf-8 -*-
"""Foods — API endpoints. Both routes need an ``Accept-Language`` header."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user
from ..deps import get_db, get_language
from ..gateway import TableClient
from .models import FoodCreateRequest, FoodResponse, FoodSearchResponse
from .storage import create_food, search_foods

router = APIRouter(prefix="/foods", tags=["Foods"])


@router.post("", response_model=FoodResponse, summary="Create a custom food")
async def create_custom_food(
    request: FoodCreateRequest,
    user: dict = Depends(get_current_user),
    lang: str = Depends(get_language),
    db: TableClient = Depends(get_db),
):
    return await create_food(db, user["id"], request.model_dump(mode="json"), lang)


@router.get("/search", response_model=FoodSearchResponse, summary="Search foods by localized name")
async def search(
    query: str = Query(default=""),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: dict = Depends(get_current_user),  # noqa: ARG001
    lang: str = Depends(get_language),
    db: TableClient = Depends(get_db),
):
    return await search_foods(db, lang, query=query, page=page, limit=limit)
