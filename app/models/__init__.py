# Database models
from app.models.record import StoredRecord
from app.models.domain import (
    MetricType,
    TimeRange,
    Metric,
    Snapshot,
    RemoteRecord,
    SyncState,
    Severity,
    StatusEvent,
)

__all__ = [
    "StoredRecord",
    "MetricType",
    "TimeRange",
    "Metric",
    "Snapshot",
    "RemoteRecord",
    "SyncState",
    "Severity",
    "StatusEvent",
]
