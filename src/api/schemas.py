"""API-facing Pydantic models."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "healthy"
    ws_connections: int = Field(description="Number of live relay sessions.")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
