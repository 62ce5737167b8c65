#!/usr/bin/env python3
"""
One-off script to read today's metrics from the local provider and print them.
Nothing is written to the record store.
"""

import asyncio

from app.core.config import get_settings
from app.models.domain import MetricType
from app.services.collector import SnapshotCollector
from app.services.metrics_source import HttpMetricsSource
from app.services.status import StatusFeed


async def main():
    settings = get_settings()
    source = HttpMetricsSource(settings.metrics_url, settings.metrics_api_key, settings.metrics_timeout)
    feed = StatusFeed()

    print(f"Reading today's metrics from {settings.metrics_url}...")
    try:
        authorized = await source.authorize(list(MetricType))
        print(f"Authorized: {authorized}")

        snapshot = await SnapshotCollector(source, feed, settings.tz).collect()
    finally:
        await source.close()

    print(f"Step count: {snapshot.step_count}")
    print(f"Stand time: {snapshot.stand_time} min")
    print(f"Updated: {sorted(t.identifier for t in snapshot.updated)}")
    print(f"Last status: [{feed.latest.severity.value}] {feed.latest.message}")


if __name__ == "__main__":
    asyncio.run(main())
