"""State machine for a single relayed call."""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Sequence
from typing import Any

from relay.coordinator import GenerationCoordinator
from relay.messages import INTERRUPT, PROMPT, Fragment, Turn
from relay.transport import RelayTransport

LOGGER = logging.getLogger(__name__)

HISTORY_MAX_TURNS = 20
HISTORY_KEEP_RECENT = 10


class SessionState(str, enum.Enum):
    IDLE = "idle"
    GENERATING = "generating"
    CLOSED = "closed"


def compact_history(
    history: Sequence[Turn],
    *,
    max_turns: int = HISTORY_MAX_TURNS,
    keep_recent: int = HISTORY_KEEP_RECENT,
) -> list[Turn]:
    """Keep the system turn plus the most recent turns once history grows too long."""

    if len(history) <= max_turns:
        return list(history)
    return [history[0], *history[-keep_recent:]]


class CallSession:
    """Conversation state of one relay connection.

    At most one generation is current at a time. Each new generation bumps the
    epoch; a running generation compares its own epoch with the session's
    before every emission, which is how interrupts and teardown cancel it.
    """

    def __init__(
        self,
        connection_id: str,
        transport: RelayTransport,
        coordinator: GenerationCoordinator,
        *,
        system_prompt: str,
        history_max_turns: int = HISTORY_MAX_TURNS,
        history_keep_recent: int = HISTORY_KEEP_RECENT,
    ) -> None:
        self.connection_id = connection_id
        self._transport = transport
        self._coordinator = coordinator
        self._history: list[Turn] = [Turn("system", system_prompt)]
        self._history_max_turns = history_max_turns
        self._history_keep_recent = history_keep_recent
        self._state = SessionState.IDLE
        self._epoch = 0
        self._current: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def history(self) -> tuple[Turn, ...]:
        return tuple(self._history)

    def messages(self) -> list[dict[str, str]]:
        return [turn.as_message() for turn in self._history]

    def is_current(self, epoch: int) -> bool:
        return self._state is not SessionState.CLOSED and epoch == self._epoch

    # Inbound events -------------------------------------------------------

    def handle_event(self, message: dict[str, Any]) -> None:
        event_type = message.get("type")
        LOGGER.info("Message received on %s: %s", self.connection_id, event_type)

        if self._state is SessionState.CLOSED:
            LOGGER.debug("Ignoring %s on closed session %s", event_type, self.connection_id)
            return
        if event_type == PROMPT:
            self.on_prompt(message.get("voicePrompt"))
        elif event_type == INTERRUPT:
            self.on_interrupt()
        else:
            LOGGER.info("Unhandled message type on %s: %s", self.connection_id, event_type)

    def on_prompt(self, text: Any) -> asyncio.Task | None:
        if self._state is not SessionState.IDLE:
            LOGGER.info("Dropping prompt on %s while %s", self.connection_id, self._state.value)
            return None

        user_text = text if isinstance(text, str) else None
        if user_text:
            LOGGER.info("User said on %s: %s", self.connection_id, user_text)

        self._epoch += 1
        self._state = SessionState.GENERATING
        epoch = self._epoch
        task = asyncio.create_task(
            self._coordinator.run(self, user_text, epoch),
            name=f"generation-{self.connection_id}-{epoch}",
        )
        self._current = task
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._on_generation_done(epoch, done))
        return task

    def on_interrupt(self) -> None:
        if self._state is not SessionState.GENERATING:
            return
        LOGGER.info("Interrupt on %s", self.connection_id)
        self._epoch += 1
        self._state = SessionState.IDLE
        self._current = None

    def close(self) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._epoch += 1
        self._state = SessionState.CLOSED
        self._current = None
        for task in list(self._tasks):
            task.cancel()

    async def wait_idle(self) -> None:
        """Wait for every generation task of this session to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Used by the coordinator -----------------------------------------------

    def add_user_turn(self, text: str) -> None:
        self._history.append(Turn("user", text))

    def record_reply(self, text: str) -> None:
        self._history.append(Turn("assistant", text))
        self.compact()

    def compact(self) -> None:
        self._history = compact_history(
            self._history,
            max_turns=self._history_max_turns,
            keep_recent=self._history_keep_recent,
        )

    async def send(self, fragment: Fragment) -> None:
        await self._transport.send_json(fragment.to_message())

    def _on_generation_done(self, epoch: int, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task is self._current:
            self._current = None
        if epoch == self._epoch and self._state is SessionState.GENERATING:
            self._state = SessionState.IDLE

        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Generation failed on %s", self.connection_id, exc_info=exc)
        else:
            LOGGER.debug("Generation on %s finished: %s", self.connection_id, task.result().value)
