"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from fastapi.requests import HTTPConnection

from relay.registry import SessionRegistry


def get_registry(connection: HTTPConnection) -> SessionRegistry:
    return connection.app.state.registry
