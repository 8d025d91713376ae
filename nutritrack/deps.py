# -*- coding: utf-8 -*-
"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, Header, HTTPException

from .auth.security import get_current_user
from .gateway import TableClient, get_gateway


def get_db(user: Dict[str, Any] = Depends(get_current_user)) -> TableClient:
    """User-scoped table client: the caller's token is forwarded to the store."""
    return get_gateway().for_user(user["token"])


def get_language(accept_language: str | None = Header(default=None)) -> str:
    # Plain locale tag expected ("cs", "en"); quality lists keep their first entry.
    lang = (accept_language or "").split(",")[0].split(";")[0].strip()
    if not lang:
        raise HTTPException(status_code=400, detail="Language header is required")
    return lang
