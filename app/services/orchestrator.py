"""Sync loop orchestration - state machine and self-re-arming timer."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from app.core.exceptions import InvalidStateTransition
from app.models.domain import Snapshot, SyncState
from app.services.collector import SnapshotCollector
from app.services.publisher import PublicationPipeline
from app.services.status import StatusFeed

logger = logging.getLogger(__name__)

CYCLE_JOB_ID = "sync_cycle"


class SyncOrchestrator:
    """
    Drives the collect/publish loop.

    start() and stop() validate and transition synchronously, then hand the
    remote work to a background task which they return. Each timer wake-up is
    a single DateTrigger job; the next one is only added after the current
    cycle has finished, so cycles never overlap.
    """

    def __init__(
        self,
        collector: SnapshotCollector,
        publisher: PublicationPipeline,
        feed: StatusFeed,
        scheduler: AsyncIOScheduler,
        interval_seconds: int = 300,
    ):
        self.collector = collector
        self.publisher = publisher
        self.feed = feed
        self.scheduler = scheduler
        self.interval = timedelta(seconds=interval_seconds)

        self._state = SyncState.IDLE
        self._timer_job_id: Optional[str] = None
        self._next_run_at: Optional[datetime] = None
        self._stop_in_flight = False
        self.last_snapshot: Optional[Snapshot] = None

        # Held for every cycle and every clear
        self._cycle_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def timer_armed(self) -> bool:
        return self._timer_job_id is not None

    @property
    def next_run_at(self) -> Optional[datetime]:
        return self._next_run_at

    @property
    def cycle_running(self) -> bool:
        return self._cycle_lock.locked()

    def _set_state(self, state: SyncState) -> None:
        if state is not self._state:
            logger.info(f"Sync state {self._state.value} -> {state.value}")
            self._state = state

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # Timer

    def _arm_timer(self) -> None:
        run_at = datetime.now(timezone.utc) + self.interval
        self.scheduler.add_job(
            self._timer_fired,
            DateTrigger(run_date=run_at),
            id=CYCLE_JOB_ID,
            name="Collect and publish health snapshot",
            replace_existing=True,
            misfire_grace_time=None,
        )
        self._timer_job_id = CYCLE_JOB_ID
        self._next_run_at = run_at
        logger.debug(f"Next sync cycle at {run_at.isoformat()}")

    def _disarm_timer(self) -> None:
        job_id = self._timer_job_id
        self._timer_job_id = None
        self._next_run_at = None
        if job_id is None:
            return
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            # Already fired and dropped by the scheduler
            pass

    async def _timer_fired(self) -> None:
        # Return at once so the job instance is released before the re-arm
        self._spawn(self._on_timer())

    async def _on_timer(self) -> None:
        self._disarm_timer()
        if self._state is not SyncState.ONLINE:
            logger.debug(f"Timer fired while {self._state.value}, skipping cycle")
            return

        try:
            async with self._cycle_lock:
                if self._state is not SyncState.ONLINE:
                    return
                await self.run_cycle()
        except Exception:
            logger.exception("Timer cycle failed")
        finally:
            # stop() may have run while the cycle was in flight
            if self._state is SyncState.ONLINE:
                self._arm_timer()

    # Cycle

    async def run_cycle(self, clear: bool = True) -> Optional[Snapshot]:
        """
        Collect then publish once. Failures are reported, never raised.

        With `clear` the save step empties the store first so one record is
        left; start() passes False since it has just cleared.
        """
        try:
            self.feed.info("Fetching data...")
            snapshot = await self.collector.collect()
            self.last_snapshot = snapshot

            self.feed.info("Saving data...")
            if clear:
                saved = await self.publisher.replace(snapshot)
            else:
                saved = await self.publisher.publish(snapshot)
        except Exception as e:
            logger.exception("Sync cycle failed")
            self.feed.error(f"Sync cycle failed: {e}.")
            return None

        summary = f"Step count: {snapshot.step_count}\nStand time: {snapshot.stand_time}"
        if saved:
            self.feed.success(f"{summary}\n\nData fetched and saved successfully.")
        else:
            self.feed.error(f"{summary}\n\nError saving data: {self.publisher.last_error}.")
        return snapshot

    # Start / stop

    def start(self) -> asyncio.Task:
        """Begin syncing. Allowed only from IDLE."""
        if self._state is not SyncState.IDLE:
            raise InvalidStateTransition("start", self._state)

        self._set_state(SyncState.STARTING)
        self.feed.info("Clearing data...")
        return self._spawn(self._complete_start())

    async def _complete_start(self) -> None:
        try:
            async with self._cycle_lock:
                if not await self.publisher.clear():
                    self.feed.error(f"Error clearing data: {self.publisher.last_error}.")
                    self._set_state(SyncState.IDLE)
                    return

                await self.run_cycle(clear=False)
        except Exception as e:
            logger.exception("Sync start failed")
            self.feed.error(f"Error starting sync: {e}.")
            self._set_state(SyncState.IDLE)
            return

        self._set_state(SyncState.ONLINE)
        self._arm_timer()

    def stop(self) -> asyncio.Task:
        """Stop syncing and clear the store. Allowed only from ONLINE."""
        if self._state is not SyncState.ONLINE:
            raise InvalidStateTransition("stop", self._state)

        self._disarm_timer()
        self._set_state(SyncState.STOPPING)
        self._stop_in_flight = True
        self.feed.info("Clearing data...")
        return self._spawn(self._complete_stop())

    def retry_stop(self) -> asyncio.Task:
        """Retry the clear of a stop attempt that failed."""
        if self._state is not SyncState.STOPPING or self._stop_in_flight:
            raise InvalidStateTransition("retry stop", self._state)

        self._stop_in_flight = True
        self.feed.info("Clearing data...")
        return self._spawn(self._complete_stop())

    @property
    def stop_in_flight(self) -> bool:
        return self._stop_in_flight

    async def _complete_stop(self) -> None:
        try:
            # Waits for a cycle that was already in flight
            async with self._cycle_lock:
                cleared = await self.publisher.clear()
        finally:
            self._stop_in_flight = False

        if cleared:
            self._set_state(SyncState.IDLE)
        else:
            self.feed.error(f"Error clearing data: {self.publisher.last_error}.")

    async def shutdown(self) -> None:
        """Disarm the timer and let in-flight work finish. Does not clear."""
        self._disarm_timer()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
