from __future__ import annotations

import asyncio
import sys
from collections.abc import AsyncIterator, Iterable
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from config.settings import Settings  # noqa: E402
from llm.base import BaseLLMClient  # noqa: E402
from relay.errors import TokenSourceError  # noqa: E402


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.pings = 0
        self.open = True

    @property
    def is_open(self) -> bool:
        return self.open

    async def send_json(self, message: dict[str, Any]) -> None:
        self.sent.append(message)

    async def ping(self) -> None:
        self.pings += 1


class FakeLLM(BaseLLMClient):
    """Scripted token source.

    ``hold_before`` pauses the stream before yielding that token index until
    ``release()`` is called; ``fail_after`` raises once that many tokens were
    yielded.
    """

    def __init__(
        self,
        tokens: Iterable[str] = (),
        *,
        fail_after: int | None = None,
        hold_before: int | None = None,
    ) -> None:
        self.tokens = list(tokens)
        self.fail_after = fail_after
        self.hold_before = hold_before
        self.calls: list[list[dict[str, str]]] = []
        self.closed = False
        self._released: asyncio.Event | None = None

    def release(self) -> None:
        self._gate().set()

    def _gate(self) -> asyncio.Event:
        if self._released is None:
            self._released = asyncio.Event()
        return self._released

    async def stream_chat(
        self,
        messages,
        *,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> AsyncIterator[str]:
        self.calls.append(list(messages))
        try:
            for index, token in enumerate(self.tokens):
                if self.fail_after is not None and index >= self.fail_after:
                    raise TokenSourceError("provider exploded")
                if self.hold_before is not None and index == self.hold_before:
                    await self._gate().wait()
                yield token
            if self.fail_after is not None and self.fail_after >= len(self.tokens):
                raise TokenSourceError("provider exploded")
        finally:
            self.closed = True


def run(coro):
    return asyncio.run(coro)


async def wait_for(predicate, *, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "llm_api_key": None,
        "llm_endpoint": None,
        "webhook_validate": False,
        "twilio_auth_token": None,
        "wss_url": None,
        "system_prompt": "SYS",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def app(settings: Settings):
    from main import create_app

    return create_app(settings)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
