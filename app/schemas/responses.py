"""Pydantic response models for API endpoints."""

from datetime import datetime
from pydantic import BaseModel

from app.models.domain import Severity, StatusEvent, SyncState


class StatusEventResponse(BaseModel):
    """Single status feed entry."""
    timestamp: datetime
    message: str
    severity: Severity

    @classmethod
    def from_event(cls, event: StatusEvent) -> "StatusEventResponse":
        return cls(timestamp=event.timestamp, message=event.message, severity=event.severity)


class SyncStatusResponse(BaseModel):
    """Everything the UI shows: state, latest event, latest values."""
    state: SyncState
    event: StatusEventResponse
    step_count: int
    stand_time: float
    captured_at: datetime | None
    next_run_at: datetime | None
    cycle_running: bool


class SyncActionResponse(BaseModel):
    """Returned by start/stop once the transition has been accepted."""
    message: str
    state: SyncState
