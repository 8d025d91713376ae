# -*- coding: utf-8 -*-
"""HTTP plumbing — uniform error bodies and request logging."""

from __future__ import annotations

import json
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .completion import CompletionError
from .gateway import StorageError

logger = logging.getLogger("nutritrack.http")

REDACTED = "REDACTED"
_SENSITIVE_HEADERS = {"authorization", "cookie", "apikey", "x-api-key"}
_SENSITIVE_KEY = re.compile(r"password|token|authorization|secret|apikey|cookie", re.IGNORECASE)


def redact(value: Any) -> Any:
    """Copy of a JSON-ish value with sensitive keys masked (recursive)."""
    if isinstance(value, dict):
        return {
            k: (REDACTED if _SENSITIVE_KEY.search(str(k)) else redact(v))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def sanitize_headers(headers: Any) -> dict:
    return {k: (REDACTED if k.lower() in _SENSITIVE_HEADERS else v) for k, v in dict(headers).items()}


def error_body(status_code: int, path: str, message: Any) -> dict:
    return {
        "statusCode": status_code,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "path": path,
        "message": message,
    }


def _path(request: Request) -> str:
    url = request.url
    return f"{url.path}?{url.query}" if url.query else url.path


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(level, "[%s] %s - %s - %s", request.method, _path(request), exc.status_code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, _path(request), exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    logger.warning("[%s] %s - 400 - %s", request.method, _path(request), messages)
    return JSONResponse(status_code=400, content=error_body(400, _path(request), messages))


async def _storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("[%s] %s - 500 - storage: %s", request.method, _path(request), exc.message, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body(500, _path(request), exc.message))


async def _completion_exception_handler(request: Request, exc: CompletionError) -> JSONResponse:
    logger.error("[%s] %s - 500 - completion: %s", request.method, _path(request), exc, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body(500, _path(request), str(exc)))


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[%s] %s - 500 - unhandled", request.method, _path(request), exc_info=exc)
    return JSONResponse(status_code=500, content=error_body(500, _path(request), "Internal server error"))


async def _request_logger(request: Request, call_next):
    started = time.perf_counter()
    body: Any = None
    if request.method in {"POST", "PUT", "PATCH", "DELETE"} and "json" in (request.headers.get("content-type") or ""):
        raw = await request.body()
        if raw:
            try:
                body = redact(json.loads(raw))
            except ValueError:
                body = "<invalid json>"

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    level = logging.INFO if response.status_code < 400 else logging.WARNING
    logger.log(
        level,
        "[%s] %s - %s - %.1fms",
        request.method,
        _path(request),
        response.status_code,
        elapsed_ms,
        extra={
            "request_headers": sanitize_headers(request.headers),
            "request_body": body,
            "client_ip": request.client.host if request.client else None,
        },
    )
    return response


def install(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StorageError, _storage_exception_handler)
    app.add_exception_handler(CompletionError, _completion_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
    app.middleware("http")(_request_logger)
