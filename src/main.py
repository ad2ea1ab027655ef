"""Entry point for the ConversationRelay voice bridge."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.relay_routes import build_relay_router
from api.routes import router as health_router
from api.twilio_routes import router as twilio_router
from config.settings import Settings, get_settings
from llm.base import BaseLLMClient
from llm.factory import build_llm_client
from relay.coordinator import GenerationCoordinator
from relay.errors import RelayError
from relay.registry import SessionRegistry

LOGGER = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    llm: BaseLLMClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        token_source = llm if llm is not None else build_llm_client(settings)
        coordinator = GenerationCoordinator(
            token_source,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
        app.state.registry = SessionRegistry.from_settings(settings, coordinator)
        LOGGER.info("WebSocket path: %s", settings.ws_path)
        LOGGER.info("Webhook validation: %s", settings.webhook_validate)
        LOGGER.info("LLM configured: %s", coordinator.has_token_source)
        try:
            yield
        finally:
            await app.state.registry.close_all()

    app = FastAPI(
        title="ConversationRelay Voice Bridge",
        description="Streams LLM replies to Twilio ConversationRelay calls sentence by sentence.",
        lifespan=lifespan,
    )

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    app.include_router(health_router)
    app.include_router(twilio_router)
    app.include_router(build_relay_router(settings.ws_path))
    return app


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = create_app(settings)


def run() -> None:
    """Serve the app with keepalive pings on the configured interval.

    Use this (the ``relay-server`` script) rather than ``uvicorn main:app``:
    the relay socket relies on uvicorn for protocol-level pings and on
    ``ws_ping_timeout=None`` so late pongs never close a call.
    """

    LOGGER.info("Server running on port %s", settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        ws_ping_interval=settings.keepalive_interval_seconds,
        ws_ping_timeout=None,
    )


if __name__ == "__main__":
    run()
