"""Latest-event status feed observed by the API layer."""

import asyncio
import logging
from typing import AsyncIterator

from app.models.domain import Severity, StatusEvent

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.ERROR: logging.ERROR,
}


class StatusFeed:
    """Holds the most recent StatusEvent and fans it out to subscribers.

    Only the latest event is kept. Subscribers get every event emitted while
    they are attached; a slow subscriber drops its oldest queued event.
    """

    MAX_QUEUE_SIZE = 100

    def __init__(self, initial: StatusEvent | None = None):
        self._latest = initial or StatusEvent("App successfully launched.", Severity.SUCCESS)
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def latest(self) -> StatusEvent:
        return self._latest

    def emit(self, message: str, severity: Severity = Severity.INFO) -> StatusEvent:
        event = StatusEvent(message=message, severity=severity)
        self._latest = event
        logger.log(_LOG_LEVELS[severity], f"[{severity.value}] {message}")

        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(event)
        return event

    def info(self, message: str) -> StatusEvent:
        return self.emit(message, Severity.INFO)

    def success(self, message: str) -> StatusEvent:
        return self.emit(message, Severity.SUCCESS)

    def error(self, message: str) -> StatusEvent:
        return self.emit(message, Severity.ERROR)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self) -> AsyncIterator[StatusEvent]:
        """Yield the current event, then every new one until the consumer stops."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.MAX_QUEUE_SIZE)
        self._subscribers.add(queue)
        try:
            yield self._latest
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)
