# -*- coding: utf-8 -*-
"""Notification dispatcher — push messages to every device of a user via Expo.

Tokens are read with the service credential. Malformed tokens are skipped,
valid ones are sent in chunks of 100 and each chunk is posted on its own so
one failing chunk does not block the others. Tickets reporting
``DeviceNotRegistered`` remove the token.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..gateway import Gateway, StorageError, get_gateway
from .tokens import delete_push_token, list_push_tokens

logger = logging.getLogger(__name__)

CHUNK_SIZE = 100

_EXPO_TOKEN = re.compile(r"^Expo(nent)?PushToken\[.+\]$")
_UUID_LIKE = re.compile(r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE)


def is_expo_push_token(token: Any) -> bool:
    return isinstance(token, str) and bool(_EXPO_TOKEN.match(token) or _UUID_LIKE.match(token))


def chunk_messages(messages: List[Dict[str, Any]], size: int = CHUNK_SIZE) -> List[List[Dict[str, Any]]]:
    return [messages[i : i + size] for i in range(0, len(messages), size)]


@dataclass
class DispatchResult:
    sent: int = 0
    failed: int = 0
    skipped_tokens: List[str] = field(default_factory=list)
    removed_tokens: List[str] = field(default_factory=list)


class NotificationDispatcher:
    def __init__(
        self,
        gateway: Optional[Gateway] = None,
        *,
        push_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._gateway = gateway
        self.push_url = push_url or settings.expo_push_url
        self.access_token = access_token if access_token is not None else settings.expo_access_token
        self.timeout = timeout if timeout is not None else settings.expo_timeout
        self.transport = transport

    @property
    def gateway(self) -> Gateway:
        return self._gateway or get_gateway()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _post_chunk(self, client: httpx.AsyncClient, chunk: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        resp = await client.post(self.push_url, json=chunk, headers=self._headers())
        resp.raise_for_status()
        body = resp.json()
        tickets = body.get("data") if isinstance(body, dict) else None
        if not isinstance(tickets, list):
            raise ValueError(f"unexpected push response: {body!r}")
        return tickets

    async def send(
        self,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> DispatchResult:
        result = DispatchResult()
        db = self.gateway.for_service()
        tokens = await list_push_tokens(db, user_id)
        if not tokens:
            logger.warning("no push tokens for user %s", user_id)
            return result

        messages: List[Dict[str, Any]] = []
        for token in tokens:
            if not is_expo_push_token(token):
                logger.error("push token %s is not a valid Expo push token", token)
                result.skipped_tokens.append(token)
                continue
            messages.append({"to": token, "sound": "default", "title": title, "body": body, "data": data or {}})

        if not messages:
            logger.warning("no valid push tokens for user %s", user_id)
            return result

        dead: List[str] = []
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for chunk in chunk_messages(messages):
                try:
                    tickets = await self._post_chunk(client, chunk)
                except (httpx.HTTPError, ValueError) as exc:
                    logger.error("push chunk of %d failed for user %s: %s", len(chunk), user_id, exc)
                    result.failed += len(chunk)
                    continue

                for message, ticket in zip(chunk, tickets):
                    if ticket.get("status") != "error":
                        result.sent += 1
                        continue
                    result.failed += 1
                    error = (ticket.get("details") or {}).get("error")
                    logger.error("push ticket error for %s: %s (%s)", message["to"], ticket.get("message"), error)
                    if error == "DeviceNotRegistered":
                        dead.append(message["to"])

        for token in dead:
            try:
                await delete_push_token(db, token)
                result.removed_tokens.append(token)
                logger.info("removed unregistered push token %s", token)
            except StorageError as exc:
                logger.error("could not remove push token %s: %s", token, exc.message)

        logger.info("push notifications for user %s: %d sent, %d failed", user_id, result.sent, result.failed)
        return result


_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher


def set_dispatcher(dispatcher: Optional[NotificationDispatcher]) -> None:
    global _dispatcher
    _dispatcher = dispatcher
