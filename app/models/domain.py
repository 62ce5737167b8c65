"""Value types shared by the collector, the publisher and the orchestrator."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from zoneinfo import ZoneInfo


class MetricType(Enum):
    """Tracked daily metrics, keyed by provider identifier."""

    STEP_COUNT = ("stepCount", "count", "Step Count")
    STAND_TIME = ("appleStandTime", "min", "Stand Time")

    def __init__(self, identifier: str, unit: str, label: str):
        self.identifier = identifier
        self.unit = unit
        self.label = label


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    @classmethod
    def today(cls, tz: str) -> "TimeRange":
        """Start of the local day up to now."""
        now = datetime.now(ZoneInfo(tz))
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return cls(start=start, end=now)


@dataclass(frozen=True)
class Metric:
    type: MetricType
    window: TimeRange


@dataclass(frozen=True)
class Snapshot:
    """One cycle's collected values.

    `updated` holds the metrics whose read succeeded this cycle; the other
    fields carry the previous in-memory value.
    """

    step_count: int
    stand_time: float
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated: frozenset = frozenset()

    @property
    def is_complete(self) -> bool:
        return self.updated == frozenset(MetricType)


@dataclass(frozen=True)
class RemoteRecord:
    """Payload of the single record kept in the store."""

    step_count: int
    stand_time: float

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "RemoteRecord":
        return cls(step_count=snapshot.step_count, stand_time=snapshot.stand_time)

    def to_fields(self) -> dict:
        return {"stepCount": self.step_count, "standTime": self.stand_time}


class SyncState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    ONLINE = "online"
    STOPPING = "stopping"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class StatusEvent:
    message: str
    severity: Severity
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
