"""Factory returning configured LLM client implementation."""

from __future__ import annotations

import logging

from config.settings import Settings, get_settings
from llm.base import BaseLLMClient
from llm.vllm_client import VLLMClient

LOGGER = logging.getLogger(__name__)

try:  # optional imports
    from llm.openai_client import OpenAIClient  # type: ignore
except ImportError:  # pragma: no cover - optional dependency
    OpenAIClient = None  # type: ignore


def build_llm_client(settings: Settings | None = None) -> BaseLLMClient | None:
    """Instantiate the configured LLM connector.

    Returns ``None`` when the provider lacks credentials; the relay then
    answers with a placeholder reply.
    """

    settings = settings or get_settings()
    if settings.llm_provider == "self_hosted_vllm":
        if not settings.llm_endpoint:
            LOGGER.warning("LLM_ENDPOINT not set; running without a token source")
            return None
        return VLLMClient(settings)
    if settings.llm_provider == "openai":
        if not settings.llm_api_key:
            LOGGER.warning("OPENAI_API_KEY not set; running without a token source")
            return None
        if OpenAIClient is None:
            raise ImportError("openai package not installed.")
        return OpenAIClient(settings)
    raise ValueError(f"Unsupported llm_provider: {settings.llm_provider}")
