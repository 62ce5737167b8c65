"""Concurrent collection of today's metric values into one Snapshot."""

import asyncio
import logging
import math
from datetime import datetime, timezone

from app.core.exceptions import MetricReadError, MetricUnavailableError
from app.models.domain import Metric, MetricType, Snapshot, TimeRange
from app.services.metrics_source import MetricsSource
from app.services.status import StatusFeed

logger = logging.getLogger(__name__)


class SnapshotCollector:
    """Reads every tracked metric in parallel and joins the results.

    Values are kept in memory between cycles: a metric whose read fails keeps
    its previous value in the returned Snapshot.
    """

    TRACKED = (MetricType.STAND_TIME, MetricType.STEP_COUNT)

    def __init__(self, source: MetricsSource, feed: StatusFeed, tz: str):
        self.source = source
        self.feed = feed
        self.tz = tz
        self.step_count: int = 0
        self.stand_time: float = 0.0

    async def _read(self, metric: Metric) -> bool:
        """Read and apply one metric. Failures become error events and return False."""
        label = metric.type.label
        try:
            value = await self.source.read_sum(metric)
            if value is None:
                return False
            self._apply(metric.type, value)
            return True
        except MetricUnavailableError as e:
            logger.warning(f"{label} unavailable: {e}")
            self.feed.error(f"{label} type is unavailable.")
        except MetricReadError as e:
            self.feed.error(f"Error fetching {label.lower()}: {e}.")
        except Exception as e:
            logger.exception(f"Unexpected error reading {label}")
            self.feed.error(f"Error fetching {label.lower()}: {e}.")
        return False

    def _apply(self, metric_type: MetricType, value: float) -> None:
        if not math.isfinite(value):
            raise MetricReadError(f"non-finite sum {value!r}")
        if metric_type is MetricType.STEP_COUNT:
            self.step_count = max(int(value), 0)
        elif metric_type is MetricType.STAND_TIME:
            self.stand_time = max(value, 0.0)

    async def collect(self) -> Snapshot:
        window = TimeRange.today(self.tz)
        metrics = [Metric(type=t, window=window) for t in self.TRACKED]

        # Every read reports back, so the barrier always releases
        results = await asyncio.gather(*(self._read(m) for m in metrics))
        updated = {metric.type for metric, ok in zip(metrics, results) if ok}

        snapshot = Snapshot(
            step_count=self.step_count,
            stand_time=self.stand_time,
            captured_at=datetime.now(timezone.utc),
            updated=frozenset(updated),
        )
        logger.info(
            f"Collected snapshot: steps={snapshot.step_count} stand={snapshot.stand_time} "
            f"({len(updated)}/{len(metrics)} updated)"
        )
        return snapshot
