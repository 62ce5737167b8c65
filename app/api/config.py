from fastapi import APIRouter
from pydantic import BaseModel

from app.core.config import get_settings

router = APIRouter(prefix="/api", tags=["config"])


class HealthResponse(BaseModel):
    status: str
    version: str


class ConfigResponse(BaseModel):
    db_path: str
    record_type: str
    metrics_url: str
    sync_interval_seconds: int
    tz: str
    auth_required: bool
    debug: bool


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version="0.1.0")


@router.get("/config", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Get current configuration (excluding secrets)."""
    settings = get_settings()
    return ConfigResponse(
        db_path=settings.db_path,
        record_type=settings.record_type,
        metrics_url=settings.metrics_url,
        sync_interval_seconds=settings.sync_interval_seconds,
        tz=settings.tz,
        auth_required=bool(settings.api_key),
        debug=settings.debug,
    )
