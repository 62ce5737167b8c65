"""Shared API dependencies."""

import secrets
from fastapi import Header, HTTPException, Request

from app.core.config import get_settings
from app.services.orchestrator import SyncOrchestrator


def get_orchestrator(request: Request) -> SyncOrchestrator:
    """The process-wide orchestrator created in the app lifespan."""
    return request.app.state.orchestrator


async def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    """
    Identity gate for actions that change sync state.

    If no API key is configured the gate is open (development mode).
    """
    expected = get_settings().api_key
    if not expected:
        return

    if not x_api_key:
        raise HTTPException(status_code=401, detail="Missing X-API-Key header")
    if not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid API key")
