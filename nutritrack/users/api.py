# -*- coding: utf-8 -*-
"""Users — API endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from ..dates import days_ago_iso
from ..deps import get_db
from ..gateway import TableClient
from .models import (
    UserProfileCreateRequest,
    UserProfileResponse,
    UserProfileUpdateRequest,
    UserWeight,
    UserWeightCreateRequest,
)
from .storage import (
    add_weight,
    create_profile,
    get_profile,
    latest_weight,
    list_weights,
    profile_with_current_weight,
    update_profile,
)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=UserProfileResponse, summary="Current user's profile")
async def read_profile(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    profile = await get_profile(db, user["id"])
    return await profile_with_current_weight(db, profile)


@router.post("/profile", response_model=UserProfileResponse, summary="Create the user's profile")
async def create_user_profile(
    request: UserProfileCreateRequest,
    user: dict = Depends(get_current_user),
    db: TableClient = Depends(get_db),
):
    return await create_profile(db, user["id"], user.get("email"), request.model_dump(mode="json"))


@router.patch("/profile", response_model=UserProfileResponse, summary="Update the user's profile")
async def update_user_profile(
    request: UserProfileUpdateRequest,
    user: dict = Depends(get_current_user),
    db: TableClient = Depends(get_db),
):
    changes = request.model_dump(mode="json", exclude_unset=True)
    return await update_profile(db, user["id"], changes)


@router.get("/weights", response_model=List[UserWeight], summary="All weight measurements, newest first")
async def read_weights(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await list_weights(db, user["id"])


@router.get("/weights/last7days", response_model=List[UserWeight])
async def read_weights_last7days(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await list_weights(db, user["id"], since=days_ago_iso(7))


@router.get("/weights/last30days", response_model=List[UserWeight])
async def read_weights_last30days(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await list_weights(db, user["id"], since=days_ago_iso(30))


@router.get("/weights/latest", response_model=Optional[UserWeight], summary="Latest weight or null")
async def read_latest_weight(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await latest_weight(db, user["id"])


@router.post("/weights", response_model=UserWeight, summary="Record a weight measurement")
async def create_weight(
    request: UserWeightCreateRequest,
    user: dict = Depends(get_current_user),
    db: TableClient = Depends(get_db),
):
    return await add_weight(
        db,
        user["id"],
        weight_value=request.weight_value,
        weight_unit=request.weight_unit.value,
        measured_at=request.measured_at,
        source=request.source,
    )
