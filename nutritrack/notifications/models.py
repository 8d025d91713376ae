# -*- coding: utf-8 -*-
"""Notifications — Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator


class RegisterPushTokenRequest(BaseModel):
    push_token: str = Field(..., min_length=1)
    device_id: Optional[str] = None
    device_name: Optional[str] = None


class RemovePushTokenRequest(BaseModel):
    push_token: Optional[str] = None
    device_id: Optional[str] = None

    @model_validator(mode="after")
    def _one_key(self):
        if not self.push_token and not self.device_id:
            raise ValueError("push_token or device_id is required")
        return self


class SendTestNotificationRequest(BaseModel):
    user_id: str = Field(..., min_length=1, alias="userId")
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    data: Optional[Dict[str, Any]] = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
