"""OpenAI/Azure OpenAI client wrapper."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable

from openai import AsyncOpenAI, OpenAIError

from config.settings import Settings, get_settings
from llm.base import BaseLLMClient
from relay.errors import TokenSourceError

LOGGER = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """Wrapper for OpenAI or Azure OpenAI streamed Chat Completions."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        if not settings.llm_api_key:
            raise ValueError("LLM API key must be configured for OpenAI client.")

        self._client = AsyncOpenAI(
            api_key=settings.llm_api_key,
            base_url=settings.llm_endpoint or None,
            timeout=settings.llm_timeout_seconds,
        )
        self._model = settings.llm_model

    async def stream_chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> AsyncIterator[str]:
        try:
            stream = await self._client.chat.completions.create(
                model=self._model,
                messages=list(messages),
                temperature=temperature,
                max_tokens=max_tokens,
                stream=True,
            )
        except OpenAIError as exc:
            raise TokenSourceError(f"OpenAI request failed: {exc}") from exc

        try:
            async for event in stream:
                if not event.choices:
                    continue
                chunk = event.choices[0].delta.content
                if chunk:
                    yield chunk
        except OpenAIError as exc:
            raise TokenSourceError(f"OpenAI stream failed: {exc}") from exc
        finally:
            await stream.close()
