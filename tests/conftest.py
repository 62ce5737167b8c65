"""Shared test fixtures for the companion sync test suite."""

import asyncio

import pytest
import pytest_asyncio
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import create_async_engine

from app.core.database import Base, create_session_maker, init_db
from app.core.exceptions import (
    StoreDeleteError,
    StoreInsertError,
    StoreQueryError,
)
from app.models.domain import MetricType, Severity
from app.services.collector import SnapshotCollector
from app.services.metrics_source import MetricsSource
from app.services.orchestrator import SyncOrchestrator
from app.services.publisher import PublicationPipeline
from app.services.record_store import RecordStore
from app.services.status import StatusFeed
# Import all models so their metadata is registered on Base
import app.models  # noqa: F401


class FakeMetricsSource(MetricsSource):
    """
    In-memory metrics provider.

    `values` maps MetricType to a value, a list of values (one per call) or an
    exception to raise.
    """

    def __init__(self, values=None, delay: float = 0.0):
        self.values = dict(values or {})
        self.delay = delay
        self.calls: list = []

    async def read_sum(self, metric):
        self.calls.append(metric)
        if self.delay:
            await asyncio.sleep(self.delay)

        value = self.values.get(metric.type)
        if isinstance(value, list):
            value = value.pop(0)
        if isinstance(value, Exception):
            raise value
        return value


class FakeRecordStore(RecordStore):
    """In-memory record store with switchable failures."""

    def __init__(self, records=None):
        self.records: dict[str, tuple[str, dict]] = dict(records or {})
        self.fail_query = False
        self.fail_delete = False
        self.fail_insert = False
        self.query_calls = 0
        self.delete_calls = 0
        self.insert_calls = 0
        self._next_id = 0

    def add(self, record_type: str, fields: dict) -> str:
        self._next_id += 1
        record_id = f"rec-{self._next_id}"
        self.records[record_id] = (record_type, fields)
        return record_id

    async def query_all(self, record_type):
        self.query_calls += 1
        if self.fail_query:
            raise StoreQueryError("store unreachable")
        return {rid for rid, (rtype, _) in self.records.items() if rtype == record_type}

    async def delete_all(self, ids):
        self.delete_calls += 1
        if self.fail_delete:
            raise StoreDeleteError("store unreachable")
        for rid in ids:
            self.records.pop(rid, None)

    async def insert(self, record_type, record):
        self.insert_calls += 1
        if self.fail_insert:
            raise StoreInsertError("quota exceeded")
        return self.add(record_type, record.to_fields())

    def fields_of(self, record_type: str = "HealthDatas") -> list[dict]:
        return [fields for rtype, fields in self.records.values() if rtype == record_type]


class RecordingFeed(StatusFeed):
    """StatusFeed that keeps every emitted event for assertions."""

    def __init__(self):
        super().__init__()
        self.events = []

    def emit(self, message, severity=Severity.INFO):
        event = super().emit(message, severity)
        self.events.append(event)
        return event

    def errors(self):
        return [e for e in self.events if e.severity is Severity.ERROR]


@pytest.fixture
def feed():
    return RecordingFeed()


@pytest.fixture
def metrics_source():
    return FakeMetricsSource({
        MetricType.STEP_COUNT: 4213.0,
        MetricType.STAND_TIME: 37.5,
    })


@pytest.fixture
def record_store():
    return FakeRecordStore()


@pytest.fixture
def scheduler():
    """An AsyncIOScheduler that is never started; jobs stay pending."""
    return AsyncIOScheduler()


@pytest.fixture
def orchestrator(metrics_source, record_store, feed, scheduler):
    collector = SnapshotCollector(metrics_source, feed, "Europe/London")
    publisher = PublicationPipeline(record_store, feed, "HealthDatas")
    return SyncOrchestrator(collector, publisher, feed, scheduler, interval_seconds=300)


@pytest_asyncio.fixture
async def session_maker():
    """
    Provide an in-memory SQLite async session factory for tests.

    Creates all tables before the test, drops them after. A StaticPool keeps
    the single in-memory database shared between sessions.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    await init_db(engine)
    factory = create_session_maker(engine)

    yield factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
