# -*- coding: utf-8 -*-
"""Notifications — token registration and the unauthenticated test trigger."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from ..auth.security import get_current_user
from ..gateway import get_gateway
from .dispatcher import get_dispatcher
from .models import RegisterPushTokenRequest, RemovePushTokenRequest, SendTestNotificationRequest, SuccessResponse
from .tokens import register_push_token, remove_push_token

router = APIRouter(prefix="/notifications", tags=["Notifications"])
test_router = APIRouter(prefix="/test-notifications", tags=["Testing"])


@router.post("/register-token", response_model=SuccessResponse, summary="Register or refresh a device push token")
async def register_token(request: RegisterPushTokenRequest, user: dict = Depends(get_current_user)):
    db = get_gateway().for_service()
    await register_push_token(
        db,
        user["id"],
        request.push_token,
        device_id=request.device_id,
        device_name=request.device_name,
    )
    return SuccessResponse(success=True)


@router.delete("/register-token", response_model=SuccessResponse, summary="Remove a device push token")
async def unregister_token(request: RemovePushTokenRequest = Body(...), user: dict = Depends(get_current_user)):
    db = get_gateway().for_service()
    removed = await remove_push_token(db, user["id"], push_token=request.push_token, device_id=request.device_id)
    return SuccessResponse(success=True, message=f"Removed {removed} token(s)")


@test_router.post("/send", response_model=SuccessResponse, summary="Send a push notification (testing only)")
async def send_test_notification(request: SendTestNotificationRequest):
    await get_dispatcher().send(request.user_id, request.title, request.body, request.data or {})
    return SuccessResponse(success=True, message="Test notification sent")
