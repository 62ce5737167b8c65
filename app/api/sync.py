"""Sync API endpoints."""

import json
import logging
from contextlib import aclosing
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from app.api.deps import get_orchestrator, require_api_key
from app.core.exceptions import InvalidStateTransition
from app.schemas.responses import StatusEventResponse, SyncActionResponse, SyncStatusResponse
from app.services.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Current sync state, latest status event and latest collected values."""
    snapshot = orchestrator.last_snapshot
    return SyncStatusResponse(
        state=orchestrator.state,
        event=StatusEventResponse.from_event(orchestrator.feed.latest),
        step_count=orchestrator.collector.step_count,
        stand_time=orchestrator.collector.stand_time,
        captured_at=snapshot.captured_at if snapshot else None,
        next_run_at=orchestrator.next_run_at,
        cycle_running=orchestrator.cycle_running,
    )


@router.post(
    "/start",
    response_model=SyncActionResponse,
    status_code=202,
    dependencies=[Depends(require_api_key)],
)
async def start_sync(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Clear the store, publish a first snapshot, then sync on an interval."""
    try:
        orchestrator.start()
    except InvalidStateTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

    return SyncActionResponse(message="Sync starting", state=orchestrator.state)


@router.post(
    "/stop",
    response_model=SyncActionResponse,
    status_code=202,
    dependencies=[Depends(require_api_key)],
)
async def stop_sync(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Stop the interval and clear the store."""
    try:
        orchestrator.stop()
    except InvalidStateTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

    return SyncActionResponse(message="Sync stopping", state=orchestrator.state)


@router.post(
    "/stop/retry",
    response_model=SyncActionResponse,
    status_code=202,
    dependencies=[Depends(require_api_key)],
)
async def retry_stop_sync(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Retry clearing the store after a failed stop."""
    try:
        orchestrator.retry_stop()
    except InvalidStateTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

    return SyncActionResponse(message="Retrying stop", state=orchestrator.state)


@router.get("/events")
async def sync_events(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, description="Close the stream after this many events"),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """Server-sent events stream of status feed updates, starting with the current event."""

    async def event_stream():
        sent = 0
        async with aclosing(orchestrator.feed.subscribe()) as events:
            async for event in events:
                if await request.is_disconnected():
                    break
                payload = StatusEventResponse.from_event(event).model_dump(mode="json")
                payload["state"] = orchestrator.state.value
                yield f"data: {json.dumps(payload)}\n\n"

                sent += 1
                if limit is not None and sent >= limit:
                    break

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
