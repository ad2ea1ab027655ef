"""Wire format of the ConversationRelay WebSocket."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

from relay.errors import MalformedEventError

Role = Literal["system", "user", "assistant"]

PROMPT = "prompt"
INTERRUPT = "interrupt"


@dataclass(frozen=True, slots=True)
class Turn:
    """One conversation turn, sent verbatim to the model."""

    role: Role
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class Fragment:
    """A speakable piece of generated text."""

    token: str
    last: bool = False

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"type": "text", "token": self.token}
        if self.last:
            message["last"] = True
        return message


def parse_relay_message(text: str | bytes) -> dict[str, Any]:
    try:
        message = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MalformedEventError(f"Unparseable relay payload: {exc}") from exc
    if not isinstance(message, dict):
        raise MalformedEventError("Relay payload must be a JSON object")
    return message
