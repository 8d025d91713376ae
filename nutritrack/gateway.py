# -*- coding: utf-8 -*-
"""Persistence gateway — table-oriented CRUD against the hosted store.

Every operation is a table name plus filters plus an operation. Two credential
modes exist: user-scoped (the caller's bearer token is forwarded, so the
store's row-level policies apply) and service-scoped (elevated key, used by
the nightly pipeline and the notification paths).

The hosted backend speaks PostgREST (the REST interface of Supabase). The
local SQLite backend lives in ``app_db.py`` and mirrors the same tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx

from .config import settings

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

_OPS = {"eq", "neq", "gt", "gte", "lt", "lte", "in", "ilike"}


class StorageError(Exception):
    """A persistence call failed (network, policy, constraint, ...)."""

    def __init__(self, message: str, *, code: Optional[str] = None, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status


class ConflictError(StorageError):
    """Unique-key violation."""


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def neq(column: str, value: Any) -> Filter:
    return Filter(column, "neq", value)


def gt(column: str, value: Any) -> Filter:
    return Filter(column, "gt", value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column, "gte", value)


def lt(column: str, value: Any) -> Filter:
    return Filter(column, "lt", value)


def lte(column: str, value: Any) -> Filter:
    return Filter(column, "lte", value)


def in_(column: str, values: Iterable[Any]) -> Filter:
    return Filter(column, "in", list(values))


def ilike(column: str, pattern: str) -> Filter:
    """Case-insensitive match; ``%`` is the wildcard."""
    return Filter(column, "ilike", pattern)


class TableClient:
    """CRUD on named tables under a single credential."""

    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        columns: str = "*",
        order: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Row]:
        raise NotImplementedError

    async def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        raise NotImplementedError

    async def insert(self, table: str, values: Row | List[Row]) -> List[Row]:
        raise NotImplementedError

    async def update(self, table: str, values: Row, *, filters: Sequence[Filter]) -> List[Row]:
        raise NotImplementedError

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> List[Row]:
        raise NotImplementedError

    async def select_one(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        columns: str = "*",
        order: Optional[str] = None,
        desc: bool = False,
    ) -> Optional[Row]:
        rows = await self.select(table, filters=filters, columns=columns, order=order, desc=desc, limit=1)
        return rows[0] if rows else None

    async def insert_one(self, table: str, values: Row) -> Row:
        rows = await self.insert(table, values)
        if not rows:
            raise StorageError(f"Insert into {table} returned no row")
        return rows[0]


PAGE_SIZE = 1000


async def distinct_values(
    db: TableClient,
    table: str,
    column: str,
    *,
    filters: Sequence[Filter] = (),
    page_size: int = PAGE_SIZE,
) -> List[Any]:
    """Every distinct non-null value of ``column``, read page by page."""
    seen: Dict[Any, None] = {}
    offset = 0
    while True:
        # Stable order keeps offset paging from skipping rows.
        rows = await db.select(table, filters=filters, columns=f"id,{column}", order="id", limit=page_size, offset=offset)
        for r in rows:
            if r.get(column) is not None:
                seen.setdefault(r[column], None)
        if len(rows) < page_size:
            return list(seen)
        offset += page_size


def check_filters(filters: Sequence[Filter]) -> None:
    for f in filters:
        if f.op not in _OPS:
            raise StorageError(f"Unsupported filter operator: {f.op}")
        if not f.column:
            raise StorageError("Filter column is required")


# ---------- PostgREST ----------


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote_in_value(value: Any) -> str:
    text = _format_value(value)
    if any(ch in text for ch in ',()"'):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def postgrest_params(
    filters: Sequence[Filter],
    *,
    columns: Optional[str] = None,
    order: Optional[str] = None,
    desc: bool = False,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[tuple[str, str]]:
    """Translate filters into PostgREST query parameters (repeatable keys)."""
    params: List[tuple[str, str]] = []
    if columns:
        params.append(("select", columns))
    for f in filters:
        if f.op == "in":
            inner = ",".join(_quote_in_value(v) for v in f.value)
            params.append((f.column, f"in.({inner})"))
        elif f.op == "eq" and f.value is None:
            params.append((f.column, "is.null"))
        elif f.op == "neq" and f.value is None:
            params.append((f.column, "not.is.null"))
        else:
            params.append((f.column, f"{f.op}.{_format_value(f.value)}"))
    if order:
        params.append(("order", f"{order}.{'desc' if desc else 'asc'}"))
    if limit is not None:
        params.append(("limit", str(int(limit))))
    if offset:
        params.append(("offset", str(int(offset))))
    return params


def _parse_content_range(value: str | None) -> int:
    # "0-9/123" or "*/0"
    if not value or "/" not in value:
        return 0
    total = value.rsplit("/", 1)[1]
    try:
        return int(total)
    except ValueError:
        return 0


class RestTableClient(TableClient):
    def __init__(self, backend: "RestBackend", bearer: str, *, api_key: Optional[str] = None) -> None:
        self._backend = backend
        self._bearer = bearer
        self._api_key = api_key or backend.api_key

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: List[tuple[str, str]],
        json_body: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        b = self._backend
        url = f"{b.base_url}/rest/v1/{table}"
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._bearer}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        try:
            async with httpx.AsyncClient(timeout=b.timeout, transport=b.transport) as client:
                resp = await client.request(method, url, params=params, json=json_body, headers=headers)
        except httpx.HTTPError as exc:
            raise StorageError(f"Store unreachable: {exc}") from exc
        except (httpx.InvalidURL, httpx.StreamError, httpx.CookieConflict) as exc:
            raise StorageError(f"Store request failed: {exc}") from exc

        if resp.status_code >= 400:
            message = resp.text
            code: Optional[str] = None
            try:
                body = resp.json()
                if isinstance(body, dict):
                    message = str(body.get("message") or body.get("error") or message)
                    code = body.get("code")
            except ValueError:
                pass
            logger.debug("store %s %s -> %s %s", method, table, resp.status_code, message)
            if resp.status_code == 409 or code == "23505":
                raise ConflictError(message, code=code, status=resp.status_code)
            raise StorageError(message, code=code, status=resp.status_code)
        return resp

    @staticmethod
    def _rows(resp: httpx.Response) -> List[Row]:
        if not resp.content:
            return []
        data = resp.json()
        if isinstance(data, dict):
            return [data]
        return list(data or [])

    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        columns: str = "*",
        order: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Row]:
        check_filters(filters)
        params = postgrest_params(filters, columns=columns, order=order, desc=desc, limit=limit, offset=offset)
        resp = await self._request("GET", table, params=params)
        return self._rows(resp)

    async def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        check_filters(filters)
        params = postgrest_params(filters, columns="id")
        resp = await self._request("HEAD", table, params=params, prefer="count=exact")
        return _parse_content_range(resp.headers.get("content-range"))

    async def insert(self, table: str, values: Row | List[Row]) -> List[Row]:
        resp = await self._request("POST", table, params=[], json_body=values, prefer="return=representation")
        return self._rows(resp)

    async def update(self, table: str, values: Row, *, filters: Sequence[Filter]) -> List[Row]:
        if not filters:
            raise StorageError(f"Refusing unfiltered update on {table}")
        check_filters(filters)
        params = postgrest_params(filters)
        resp = await self._request("PATCH", table, params=params, json_body=values, prefer="return=representation")
        return self._rows(resp)

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> List[Row]:
        if not filters:
            raise StorageError(f"Refusing unfiltered delete on {table}")
        check_filters(filters)
        params = postgrest_params(filters)
        resp = await self._request("DELETE", table, params=params, prefer="return=representation")
        return self._rows(resp)


class RestBackend:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        service_key: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url or not api_key:
            raise StorageError("Missing store configuration. Check SUPABASE_URL and SUPABASE_KEY.")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.service_key = service_key
        self.timeout = timeout
        self.transport = transport

    def client(self, access_token: str) -> TableClient:
        return RestTableClient(self, access_token)

    def service_client(self) -> TableClient:
        if not self.service_key:
            raise StorageError("Missing SUPABASE_SERVICE_ROLE_KEY configuration")
        # The service key is sent as both apikey and bearer, which bypasses row-level policies.
        return RestTableClient(self, self.service_key, api_key=self.service_key)


# ---------- Gateway ----------


class Gateway:
    """Hands out table clients for one of the two credential modes."""

    def __init__(self, backend: Any) -> None:
        self.backend = backend

    def for_user(self, access_token: str) -> TableClient:
        if not access_token:
            raise StorageError("A user access token is required")
        return self.backend.client(access_token)

    def for_service(self) -> TableClient:
        return self.backend.service_client()


_gateway: Optional[Gateway] = None


def build_gateway() -> Gateway:
    if settings.sqlite_path is not None:
        from .app_db import SqliteBackend

        return Gateway(SqliteBackend(settings.sqlite_path))
    return Gateway(
        RestBackend(
            settings.supabase_url,
            settings.supabase_key,
            service_key=settings.supabase_service_role_key,
            timeout=settings.supabase_timeout,
        )
    )


def get_gateway() -> Gateway:
    global _gateway
    if _gateway is None:
        _gateway = build_gateway()
    return _gateway


def set_gateway(gateway: Optional[Gateway]) -> None:
    global _gateway
    _gateway = gateway
