"""ConversationRelay WebSocket endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from api.dependencies import get_registry
from relay.errors import MalformedEventError
from relay.messages import parse_relay_message
from relay.registry import SessionRegistry
from relay.transport import WebSocketRelayTransport

LOGGER = logging.getLogger(__name__)


async def relay_websocket(
    websocket: WebSocket,
    registry: SessionRegistry = Depends(get_registry),
) -> None:
    transport = WebSocketRelayTransport(websocket)
    session = registry.open(transport)
    try:
        await websocket.accept()
        # Single consumer per connection keeps transcript events in order.
        while True:
            payload = await transport.receive()
            try:
                message = parse_relay_message(payload)
            except MalformedEventError as exc:
                LOGGER.warning("Error processing message on %s: %s", session.connection_id, exc.detail)
                continue
            session.handle_event(message)
    except WebSocketDisconnect as exc:
        LOGGER.info(
            "Relay socket %s disconnected, code: %s, reason: %s",
            session.connection_id,
            exc.code,
            exc.reason,
        )
    finally:
        registry.close(session.connection_id)


def build_relay_router(ws_path: str) -> APIRouter:
    router = APIRouter(tags=["relay"])
    router.add_api_websocket_route(ws_path, relay_websocket, name="relay_websocket")
    return router
