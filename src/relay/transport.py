"""Transport seam between a call session and the relay WebSocket."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

LOGGER = logging.getLogger(__name__)


class RelayTransport(Protocol):
    """What a call session needs from its connection."""

    @property
    def is_open(self) -> bool:  # pragma: no cover - protocol stub
        ...

    async def send_json(self, message: dict[str, Any]) -> None:  # pragma: no cover - protocol stub
        ...

    async def ping(self) -> None:  # pragma: no cover - protocol stub
        ...


class WebSocketRelayTransport:
    """Adapter over a FastAPI WebSocket.

    ASGI has no message for control frames, so ``ping`` cannot put a ping on
    the wire itself. The server runs uvicorn with ``ws_ping_interval`` equal
    to the keepalive interval, which sends the protocol-level pings. Serving
    ``main:app`` with a bare ``uvicorn`` command falls back to uvicorn's default
    ping interval and 20s pong timeout, which can drop a call whose pong is late.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket

    @property
    def is_open(self) -> bool:
        return (
            self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    async def receive(self) -> str | bytes:
        """Return the next data frame, raising WebSocketDisconnect on close."""

        message = await self._ws.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(code=message.get("code", 1000), reason=message.get("reason"))
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def send_json(self, message: dict[str, Any]) -> None:
        await self._ws.send_text(json.dumps(message, ensure_ascii=False))

    async def ping(self) -> None:
        LOGGER.debug("Keepalive tick for %s", self._ws.client)
