"""Drives one model reply for a call and streams it back as sentences."""

from __future__ import annotations

import enum
import logging
from collections.abc import AsyncIterator, Iterable
from typing import TYPE_CHECKING

from llm.base import BaseLLMClient
from relay.errors import TokenSourceError
from relay.messages import Fragment
from relay.segmenter import JAPANESE_TERMINALS, SentenceSegmenter

if TYPE_CHECKING:  # pragma: no cover
    from relay.session import CallSession

LOGGER = logging.getLogger(__name__)

NOT_HEARD_MESSAGE = "申し訳ございません、聞き取れませんでした。もう一度お願いします。"
APOLOGY_MESSAGE = "申し訳ございません、システムエラーが発生しました。しばらくお待ちください。"
PLACEHOLDER_TEMPLATE = "あなたのメッセージ「{text}」を受け取りました。これはプレースホルダーのレスポンスです。"


class GenerationOutcome(str, enum.Enum):
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    FAILED = "failed"
    EMPTY_INPUT = "empty_input"
    PLACEHOLDER = "placeholder"


class GenerationCoordinator:
    """Runs generations for any session; holds no per-call state.

    A run is tagged with the session epoch it started under. Any later epoch
    change means the run was superseded: it stops pulling tokens and never
    emits again, not even a terminal fragment.
    """

    def __init__(
        self,
        llm: BaseLLMClient | None,
        *,
        temperature: float = 0.7,
        max_tokens: int = 500,
        terminals: Iterable[str] = JAPANESE_TERMINALS,
    ) -> None:
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._terminals = frozenset(terminals)

    @property
    def has_token_source(self) -> bool:
        return self._llm is not None

    async def run(self, session: CallSession, user_text: str | None, epoch: int) -> GenerationOutcome:
        text = (user_text or "").strip()
        if not text:
            LOGGER.info("Empty utterance on %s", session.connection_id)
            await session.send(Fragment(NOT_HEARD_MESSAGE, last=True))
            return GenerationOutcome.EMPTY_INPUT

        session.add_user_turn(text)

        if self._llm is None:
            reply = PLACEHOLDER_TEMPLATE.format(text=text)
            LOGGER.info("No token source configured, sending placeholder on %s", session.connection_id)
            session.record_reply(reply)
            await session.send(Fragment(reply, last=True))
            return GenerationOutcome.PLACEHOLDER

        segmenter = SentenceSegmenter(self._terminals)
        stream = self._llm.stream_chat(
            session.messages(),
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        try:
            while True:
                increment = await _next_increment(stream)
                if increment is None:
                    break
                if not session.is_current(epoch):
                    LOGGER.info("Generation interrupted on %s", session.connection_id)
                    return GenerationOutcome.INTERRUPTED
                for fragment in segmenter.feed(increment):
                    if not session.is_current(epoch):
                        LOGGER.info("Generation interrupted on %s", session.connection_id)
                        return GenerationOutcome.INTERRUPTED
                    await session.send(fragment)
        except TokenSourceError as exc:
            LOGGER.error("Token source failed on %s: %s", session.connection_id, exc, exc_info=exc)
            if not session.is_current(epoch):
                return GenerationOutcome.INTERRUPTED
            await session.send(Fragment(APOLOGY_MESSAGE, last=True))
            return GenerationOutcome.FAILED
        finally:
            await _close_stream(stream)

        if not session.is_current(epoch):
            LOGGER.info("Generation interrupted on %s", session.connection_id)
            return GenerationOutcome.INTERRUPTED

        # Settle history before the final send can suspend.
        reply = segmenter.full_text
        if reply:
            session.record_reply(reply)
            LOGGER.debug("AI response on %s: %s", session.connection_id, reply)
        else:
            session.compact()

        await session.send(segmenter.flush())
        return GenerationOutcome.COMPLETED


async def _next_increment(stream: AsyncIterator[str]) -> str | None:
    try:
        return await anext(stream)
    except StopAsyncIteration:
        return None
    except TokenSourceError:
        raise
    except Exception as exc:
        raise TokenSourceError(f"Token stream failed: {exc}") from exc


async def _close_stream(stream: AsyncIterator[str]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:  # pragma: no cover - provider cleanup
        LOGGER.warning("Closing token stream failed", exc_info=True)
