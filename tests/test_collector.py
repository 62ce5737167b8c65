"""Tests for concurrent snapshot collection."""

import asyncio

import pytest

from app.core.exceptions import MetricReadError, MetricUnavailableError
from app.models.domain import MetricType
from app.services.collector import SnapshotCollector
from app.services.metrics_source import MetricsSource

from tests.conftest import FakeMetricsSource


def make_collector(source, feed):
    return SnapshotCollector(source, feed, "Europe/London")


class TestCollect:

    @pytest.mark.asyncio
    async def test_collects_both_metrics(self, metrics_source, feed):
        snapshot = await make_collector(metrics_source, feed).collect()

        assert snapshot.step_count == 4213
        assert snapshot.stand_time == 37.5
        assert snapshot.is_complete
        assert feed.errors() == []

    @pytest.mark.asyncio
    async def test_step_count_is_truncated_to_int(self, feed):
        source = FakeMetricsSource({MetricType.STEP_COUNT: 120.9, MetricType.STAND_TIME: 3.0})
        snapshot = await make_collector(source, feed).collect()
        assert snapshot.step_count == 120
        assert isinstance(snapshot.step_count, int)

    @pytest.mark.asyncio
    async def test_window_is_start_of_day_to_now(self, metrics_source, feed):
        await make_collector(metrics_source, feed).collect()

        window = metrics_source.calls[0].window
        assert (window.start.hour, window.start.minute, window.start.second) == (0, 0, 0)
        assert window.start.date() == window.end.date()
        assert window.start <= window.end

    @pytest.mark.asyncio
    async def test_reads_run_concurrently(self, feed):
        """Each read waits until both have started; sequential reads would hang."""
        started = 0
        both_started = asyncio.Event()

        class BarrierSource(MetricsSource):
            async def read_sum(self, metric):
                nonlocal started
                started += 1
                if started == 2:
                    both_started.set()
                await both_started.wait()
                return 1.0

        snapshot = await asyncio.wait_for(make_collector(BarrierSource(), feed).collect(), timeout=1)
        assert snapshot.updated == frozenset(MetricType)


class TestPartialFailure:

    @pytest.mark.asyncio
    async def test_read_error_keeps_previous_value(self, feed):
        source = FakeMetricsSource({
            MetricType.STEP_COUNT: [4213.0, MetricReadError("query timed out")],
            MetricType.STAND_TIME: [37.5, 39.0],
        })
        collector = make_collector(source, feed)

        await collector.collect()
        snapshot = await collector.collect()

        assert snapshot.step_count == 4213
        assert snapshot.stand_time == 39.0
        assert snapshot.updated == frozenset({MetricType.STAND_TIME})
        assert not snapshot.is_complete
        assert [e.message for e in feed.errors()] == ["Error fetching step count: query timed out."]

    @pytest.mark.asyncio
    async def test_unavailable_type_logs_and_leaves_field_unset(self, feed):
        source = FakeMetricsSource({
            MetricType.STEP_COUNT: 500.0,
            MetricType.STAND_TIME: MetricUnavailableError("appleStandTime is not provided"),
        })
        snapshot = await make_collector(source, feed).collect()

        assert snapshot.step_count == 500
        assert snapshot.stand_time == 0.0
        assert feed.errors()[0].message == "Stand Time type is unavailable."

    @pytest.mark.asyncio
    async def test_both_failing_still_returns_snapshot(self, feed):
        source = FakeMetricsSource({
            MetricType.STEP_COUNT: MetricReadError("denied"),
            MetricType.STAND_TIME: MetricReadError("denied"),
        })
        snapshot = await make_collector(source, feed).collect()

        assert snapshot.updated == frozenset()
        assert (snapshot.step_count, snapshot.stand_time) == (0, 0.0)
        assert len(feed.errors()) == 2

    @pytest.mark.asyncio
    async def test_no_samples_is_not_an_error(self, feed):
        source = FakeMetricsSource({MetricType.STEP_COUNT: None, MetricType.STAND_TIME: 2.0})
        snapshot = await make_collector(source, feed).collect()

        assert snapshot.updated == frozenset({MetricType.STAND_TIME})
        assert feed.errors() == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, feed):
        source = FakeMetricsSource({
            MetricType.STEP_COUNT: RuntimeError("bug"),
            MetricType.STAND_TIME: 1.0,
        })
        snapshot = await make_collector(source, feed).collect()

        assert snapshot.stand_time == 1.0
        assert feed.errors()[0].message == "Error fetching step count: bug."

    @pytest.mark.asyncio
    async def test_non_finite_value_keeps_previous_value(self, feed):
        source = FakeMetricsSource({
            MetricType.STEP_COUNT: [4213.0, float("inf")],
            MetricType.STAND_TIME: [37.5, float("nan")],
        })
        collector = make_collector(source, feed)

        await collector.collect()
        snapshot = await collector.collect()

        assert (snapshot.step_count, snapshot.stand_time) == (4213, 37.5)
        assert snapshot.updated == frozenset()
        assert [e.message for e in feed.errors()] == [
            "Error fetching stand time: non-finite sum nan.",
            "Error fetching step count: non-finite sum inf.",
        ]
