import logging
from contextlib import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from app.core.config import get_settings
from app.core.database import init_db, async_session_maker
from app.api import config, sync
from app.models.domain import MetricType
from app.services.collector import SnapshotCollector
from app.services.metrics_source import HttpMetricsSource
from app.services.orchestrator import SyncOrchestrator
from app.services.publisher import PublicationPipeline
from app.services.record_store import SqlRecordStore
from app.services.status import StatusFeed

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_orchestrator(source, store, scheduler: AsyncIOScheduler) -> SyncOrchestrator:
    """Wire the sync pipeline around one status feed."""
    feed = StatusFeed()
    collector = SnapshotCollector(source, feed, settings.tz)
    publisher = PublicationPipeline(store, feed, settings.record_type)
    return SyncOrchestrator(
        collector,
        publisher,
        feed,
        scheduler,
        interval_seconds=settings.sync_interval_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await init_db()

    source = HttpMetricsSource(settings.metrics_url, settings.metrics_api_key, settings.metrics_timeout)
    if not await source.authorize(list(MetricType)):
        logger.warning("Metrics provider did not grant read access; reads may fail")

    scheduler = AsyncIOScheduler()
    orchestrator = build_orchestrator(source, SqlRecordStore(async_session_maker), scheduler)
    scheduler.start()
    app.state.orchestrator = orchestrator
    logger.info(f"Companion sync ready - interval {settings.sync_interval_seconds}s")
    yield
    # Shutdown
    await orchestrator.shutdown()
    await source.close()


# Create FastAPI application
app = FastAPI(
    title="Companion Sync",
    description="Publishes today's step count and stand time as a single current record",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(config.router)
app.include_router(sync.router)
