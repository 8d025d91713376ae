# -*- coding: utf-8 -*-
"""Completion client — one chat completion against an OpenAI-compatible API.

The response text is returned as-is; callers store it unparsed.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import settings

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """The completion endpoint failed or answered with an unexpected shape."""


def system_instruction(language: str) -> str:
    return (
        "You are an expert nutrition advisor who gives personalised recommendations "
        "based on an analysis of the user's food diary and profile. "
        "Your answers must always be a bare JSON object without any leading or trailing text. "
        "Base your advice on scientific evidence about nutrition and fitness. "
        f"Always answer in {language} and tailor the advice to the user's goal "
        "(losing fat, gaining muscle or maintaining weight). "
        "Keep the answers short, clear and directly actionable. "
        "Never add markdown formatting, code fences or explanatory text - only the JSON object."
    )


class CompletionClient:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        language: Optional[str] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.openai_timeout
        self.temperature = temperature if temperature is not None else settings.openai_temperature
        self.language = language or settings.recommendation_language
        self.transport = transport

    def _url(self) -> str:
        if self.base_url.endswith("/chat/completions"):
            return self.base_url
        return f"{self.base_url}/chat/completions"

    async def generate(self, prompt: str, model: str) -> str:
        if not self.api_key:
            raise CompletionError("OPENAI_API_KEY not set")

        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_instruction(self.language)},
            {"role": "user", "content": prompt},
        ]
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self._url(), json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("completion API error: %s %s", exc.response.status_code, exc.response.text[:500])
            raise CompletionError(f"Failed to generate completion: HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("completion API unreachable: %s", exc)
            raise CompletionError(f"Failed to generate completion: {exc}") from exc
        except ValueError as exc:
            raise CompletionError("Failed to generate completion: invalid JSON body") from exc

        try:
            content = data["choices"][0]["message"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise CompletionError("Failed to generate completion: unexpected response shape") from exc
        return content or ""


_client: Optional[CompletionClient] = None


def get_completion_client() -> CompletionClient:
    global _client
    if _client is None:
        _client = CompletionClient()
    return _client


def set_completion_client(client: Optional[CompletionClient]) -> None:
    global _client
    _client = client
