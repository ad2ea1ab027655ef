"""Process-wide table of live relay connections."""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass

from config.settings import Settings
from relay.coordinator import GenerationCoordinator
from relay.session import HISTORY_KEEP_RECENT, HISTORY_MAX_TURNS, CallSession
from relay.transport import RelayTransport

LOGGER = logging.getLogger(__name__)

KEEPALIVE_INTERVAL_SECONDS = 25.0


@dataclass(slots=True)
class _Connection:
    session: CallSession
    transport: RelayTransport
    keepalive: asyncio.Task


class SessionRegistry:
    """Creates a session per accepted connection and tears it down on close.

    Constructed once at startup and injected where needed. Each connection's
    lifecycle events touch the table exactly once, so a plain dict suffices on
    a single event loop.
    """

    def __init__(
        self,
        coordinator: GenerationCoordinator,
        *,
        system_prompt: str,
        keepalive_interval: float = KEEPALIVE_INTERVAL_SECONDS,
        history_max_turns: int = HISTORY_MAX_TURNS,
        history_keep_recent: int = HISTORY_KEEP_RECENT,
    ) -> None:
        self._coordinator = coordinator
        self._system_prompt = system_prompt
        self._keepalive_interval = keepalive_interval
        self._history_max_turns = history_max_turns
        self._history_keep_recent = history_keep_recent
        self._connections: dict[str, _Connection] = {}

    @classmethod
    def from_settings(cls, settings: Settings, coordinator: GenerationCoordinator) -> SessionRegistry:
        return cls(
            coordinator,
            system_prompt=settings.system_prompt,
            keepalive_interval=settings.keepalive_interval_seconds,
            history_max_turns=settings.history_max_turns,
            history_keep_recent=settings.history_keep_recent,
        )

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def get(self, connection_id: str) -> CallSession | None:
        connection = self._connections.get(connection_id)
        return connection.session if connection else None

    def open(self, transport: RelayTransport) -> CallSession:
        connection_id = self._new_connection_id()
        session = CallSession(
            connection_id,
            transport,
            self._coordinator,
            system_prompt=self._system_prompt,
            history_max_turns=self._history_max_turns,
            history_keep_recent=self._history_keep_recent,
        )
        keepalive = asyncio.create_task(
            self._keepalive(connection_id, transport),
            name=f"keepalive-{connection_id}",
        )
        self._connections[connection_id] = _Connection(session, transport, keepalive)
        LOGGER.info("WebSocket connection established: %s", connection_id)
        return session

    def close(self, connection_id: str) -> None:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        connection.keepalive.cancel()
        connection.session.close()
        LOGGER.info("WebSocket connection closed: %s", connection_id)

    async def close_all(self) -> None:
        connections = list(self._connections.values())
        for connection_id in list(self._connections):
            self.close(connection_id)
        for connection in connections:
            await asyncio.gather(connection.keepalive, return_exceptions=True)
            await connection.session.wait_idle()

    def _new_connection_id(self) -> str:
        while True:
            connection_id = secrets.token_hex(6)
            if connection_id not in self._connections:
                return connection_id

    async def _keepalive(self, connection_id: str, transport: RelayTransport) -> None:
        while True:
            await asyncio.sleep(self._keepalive_interval)
            if not transport.is_open:
                continue
            try:
                await transport.ping()
            except Exception:
                LOGGER.warning("Keepalive ping failed on %s", connection_id, exc_info=True)
