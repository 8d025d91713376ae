# -*- coding: utf-8 -*-
"""Push token persistence (one row per user and device)."""

from __future__ import annotations

import logging
from typing import List, Optional

from ..gateway import Row, TableClient, distinct_values, eq

logger = logging.getLogger(__name__)


async def register_push_token(
    db: TableClient,
    user_id: str,
    push_token: str,
    *,
    device_id: Optional[str] = None,
    device_name: Optional[str] = None,
) -> Row:
    if device_id:
        existing = await db.select_one(
            "user_push_tokens",
            filters=[eq("user_id", user_id), eq("device_id", device_id)],
        )
        if existing is not None:
            rows = await db.update(
                "user_push_tokens",
                {"push_token": push_token, "device_name": device_name},
                filters=[eq("id", existing["id"])],
            )
            logger.info("updated push token for user %s device %s", user_id, device_id)
            return rows[0] if rows else existing

    row = await db.insert_one(
        "user_push_tokens",
        {"user_id": user_id, "push_token": push_token, "device_id": device_id, "device_name": device_name},
    )
    logger.info("registered new push token for user %s", user_id)
    return row


async def remove_push_token(
    db: TableClient,
    user_id: str,
    *,
    push_token: Optional[str] = None,
    device_id: Optional[str] = None,
) -> int:
    filters = [eq("user_id", user_id)]
    if push_token:
        filters.append(eq("push_token", push_token))
    if device_id:
        filters.append(eq("device_id", device_id))
    if len(filters) == 1:
        return 0
    return len(await db.delete("user_push_tokens", filters=filters))


async def list_push_tokens(db: TableClient, user_id: str) -> List[str]:
    rows = await db.select("user_push_tokens", filters=[eq("user_id", user_id)], columns="push_token")
    return [r["push_token"] for r in rows if r.get("push_token")]


async def delete_push_token(db: TableClient, push_token: str) -> int:
    return len(await db.delete("user_push_tokens", filters=[eq("push_token", push_token)]))


async def user_ids_with_push_tokens(db: TableClient) -> List[str]:
    return await distinct_values(db, "user_push_tokens", "user_id")
