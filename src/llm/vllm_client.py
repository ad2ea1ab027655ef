"""Client for self-hosted vLLM or TGI compatible inference endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Iterable

import httpx

from config.settings import Settings, get_settings
from llm.base import BaseLLMClient
from relay.errors import TokenSourceError

LOGGER = logging.getLogger(__name__)

_SSE_PREFIX = "data:"
SSE_DONE = "[DONE]"


class VLLMClient(BaseLLMClient):
    """Minimal streaming client for an OpenAI-compatible inference server."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        if not settings.llm_endpoint:
            raise ValueError("Self-hosted LLM endpoint must be configured.")

        self._endpoint = settings.llm_endpoint.rstrip("/")
        self._model = settings.llm_model
        self._api_key = settings.llm_api_key
        self._timeout = settings.llm_timeout_seconds

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def stream_chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> AsyncIterator[str]:
        payload = {
            "model": self._model,
            "messages": list(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": True,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                async with client.stream(
                    "POST",
                    f"{self._endpoint}/v1/chat/completions",
                    json=payload,
                    headers=self._headers(),
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        data = sse_data(line)
                        if data is None:
                            continue
                        if data == SSE_DONE:
                            return
                        chunk = delta_content(data)
                        if chunk:
                            yield chunk
        except httpx.HTTPError as exc:
            raise TokenSourceError(f"Inference server request failed: {exc}") from exc


def sse_data(line: str) -> str | None:
    """Return the payload of a server-sent-events ``data:`` line."""

    line = line.strip()
    if not line.startswith(_SSE_PREFIX):
        return None
    return line[len(_SSE_PREFIX):].strip()


def delta_content(data: str) -> str | None:
    try:
        event = json.loads(data)
    except ValueError as exc:
        raise TokenSourceError(f"Invalid stream chunk: {data[:80]}") from exc

    choices = event.get("choices") or []
    if not choices:
        return None
    return (choices[0].get("delta") or {}).get("content") or None
