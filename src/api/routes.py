"""Operational routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_registry
from api.schemas import HealthResponse
from relay.registry import SessionRegistry

router = APIRouter(tags=["health"])


@router.get("/healthz", response_model=HealthResponse)
async def healthz(registry: SessionRegistry = Depends(get_registry)) -> HealthResponse:
    return HealthResponse(ws_connections=len(registry))
