# -*- coding: utf-8 -*-
"""Steps — API endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from ..dates import days_ago_iso
from ..deps import get_db
from ..gateway import TableClient
from .models import StepMeasurement, StepMeasurementCreateRequest
from .storage import list_step_measurements, upsert_step_measurement

router = APIRouter(prefix="/steps", tags=["Steps"])


@router.post("", response_model=StepMeasurement, summary="Record the day's step count")
async def create_steps(
    request: StepMeasurementCreateRequest,
    user: dict = Depends(get_current_user),
    db: TableClient = Depends(get_db),
):
    return await upsert_step_measurement(db, user["id"], **request.model_dump())


@router.get("", response_model=List[StepMeasurement])
async def read_steps(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await list_step_measurements(db, user["id"])


@router.get("/last7days", response_model=List[StepMeasurement])
async def read_steps_last7days(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await list_step_measurements(db, user["id"], since=days_ago_iso(7))


@router.get("/last30days", response_model=List[StepMeasurement])
async def read_steps_last30days(user: dict = Depends(get_current_user), db: TableClient = Depends(get_db)):
    return await list_step_measurements(db, user["id"], since=days_ago_iso(30))
