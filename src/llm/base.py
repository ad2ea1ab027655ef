"""Shared abstractions for language model clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable


class BaseLLMClient(ABC):
    """Abstract base class for streaming token sources.

    Implementations wrap provider and transport failures in
    ``relay.errors.TokenSourceError``.
    """

    @abstractmethod
    def stream_chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> AsyncIterator[str]:
        """Yield reply increments for the ordered chat history."""
