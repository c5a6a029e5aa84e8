"""
Unit Tests for Health Aggregation
=================================

Tests for summarizing health records, checking all active sources and
reusing recent stored results.
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_feed
from feedpulse.models import FeedHealthRecord, FeedSource, HealthStatus
from feedpulse.monitoring.feed_health import FeedHealthMonitor
from feedpulse.monitoring.health_aggregator import HealthAggregator, summarize_records
from feedpulse.processing.feed_fetcher import FeedFetcher


CHECK_TIME = datetime(2024, 9, 7, 12, 0, 0, tzinfo=timezone.utc)


def record(source_id, status, failures=0, average=0.0, checked=CHECK_TIME):
    return FeedHealthRecord(
        source_id=source_id,
        source_name=source_id.title(),
        status=status,
        consecutive_failures=failures,
        average_response_time_ms=average,
        last_checked_at=checked,
    )


class MutableClock:
    def __init__(self, value):
        self.value = value

    def __call__(self):
        return self.value


@pytest.fixture
def now():
    return MutableClock(CHECK_TIME)


@pytest.fixture
def aggregator(parser, health_store, recording_sleep, settings, now):
    fetcher = FeedFetcher(parser=parser, sleep=recording_sleep, settings=settings)
    monitor = FeedHealthMonitor(fetcher, store=health_store, now=now, settings=settings)
    return HealthAggregator(monitor, sleep=recording_sleep, settings=settings)


class TestSummarizeRecords:
    """Test building summaries from records."""

    def test_empty(self):
        summary = summarize_records([])

        assert summary.total_feeds == 0
        assert summary.average_response_time_ms == 0.0
        assert summary.health_percentage == 0.0
        assert summary.details == []

    def test_counts_and_average(self):
        records = [
            record("a", HealthStatus.HEALTHY, average=100.0),
            record("b", HealthStatus.HEALTHY, average=200.0),
            record("c", HealthStatus.DEGRADED, failures=2, average=300.0),
            record("d", HealthStatus.FAILED, failures=5, average=400.0),
        ]

        summary = summarize_records(records)

        assert summary.total_feeds == 4
        assert summary.healthy_feeds == 2
        assert summary.degraded_feeds == 1
        assert summary.failed_feeds == 1
        assert summary.average_response_time_ms == 250.0
        assert summary.health_percentage == 50.0
        assert not summary.cached


class TestCheckAll:
    """Test checking every active source."""

    @pytest.mark.asyncio
    async def test_checks_active_sources_only(self, aggregator, parser, sample_sources):
        tech, science, archive = sample_sources
        parser.script(tech.url, make_feed({"title": "ok"}))
        parser.script(science.url, ConnectionError("refused"))

        summary = await aggregator.check_all(sample_sources)

        assert summary.total_feeds == 2
        assert summary.healthy_feeds == 1
        assert summary.degraded_feeds == 1
        assert summary.failed_feeds == 0
        assert [r.source_id for r in summary.details] == ["tech", "science"]
        assert parser.call_count(archive.url) == 0
        # Health checks make two attempts per source
        assert parser.call_count(science.url) == 2

    @pytest.mark.asyncio
    async def test_health_batches_are_not_paced(self, aggregator, parser, recording_sleep):
        sources = [
            FeedSource(id=f"s{i}", name=f"S{i}", url=f"https://h{i}.example.com/rss")
            for i in range(25)
        ]
        for source in sources:
            parser.script(source.url, make_feed())

        summary = await aggregator.check_all(sources)

        assert summary.healthy_feeds == 25
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_no_sources(self, aggregator):
        summary = await aggregator.check_all([])

        assert summary.total_feeds == 0
        assert summary.average_response_time_ms == 0.0


class TestCachedSummary:
    """Test reuse of recently stored records."""

    def test_nothing_stored(self, aggregator):
        assert aggregator.cached_summary() is None

    def test_recent_records_reused(self, aggregator, health_store):
        health_store.set(record("a", HealthStatus.HEALTHY, checked=CHECK_TIME - timedelta(minutes=30)))

        summary = aggregator.cached_summary()

        assert summary is not None
        assert summary.cached
        assert summary.total_feeds == 1

    def test_stale_records_ignored(self, aggregator, health_store):
        health_store.set(record("a", HealthStatus.HEALTHY, checked=CHECK_TIME - timedelta(minutes=61)))

        assert aggregator.cached_summary() is None

    @pytest.mark.asyncio
    async def test_summarize_health_uses_cache(self, aggregator, parser, health_store, sample_sources):
        health_store.set(record("tech", HealthStatus.HEALTHY, checked=CHECK_TIME - timedelta(minutes=5)))

        summary = await aggregator.summarize_health(sample_sources)

        assert summary.cached
        assert parser.calls == []

    @pytest.mark.asyncio
    async def test_summarize_health_refreshes_when_stale(
        self, aggregator, parser, health_store, sample_sources, now
    ):
        tech, science, _ = sample_sources
        parser.script(tech.url, make_feed())
        parser.script(science.url, make_feed())

        first = await aggregator.summarize_health(sample_sources)
        assert not first.cached
        assert len(parser.calls) == 2

        now.value = CHECK_TIME + timedelta(minutes=90)
        second = await aggregator.summarize_health(sample_sources)

        assert not second.cached
        assert len(parser.calls) == 4

    @pytest.mark.asyncio
    async def test_force_bypasses_cache(self, aggregator, parser, health_store, sample_sources):
        health_store.set(record("tech", HealthStatus.HEALTHY))
        parser.script(sample_sources[0].url, make_feed())
        parser.script(sample_sources[1].url, make_feed())

        summary = await aggregator.summarize_health(sample_sources, force=True)

        assert not summary.cached
        assert len(parser.calls) == 2
