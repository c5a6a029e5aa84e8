"""
Feed Health Aggregation
======================

Checks every active source through the health monitor, in unpaced batches,
and summarizes the resulting records.
"""

from datetime import timedelta
from typing import Iterable, Optional, Sequence

from ..config.settings import get_settings, FeedPulseSettings
from ..models import FeedHealthRecord, FeedSource, HealthStatus, HealthSummary
from ..processing.batch_scheduler import BatchScheduler, SleepFunc
from ..utils.logging import get_logger_for_component
from .feed_health import FeedHealthMonitor


def summarize_records(
    records: Iterable[FeedHealthRecord], cached: bool = False
) -> HealthSummary:
    """Build a HealthSummary from records.

    The average response time is 0.0 when there are no records.
    """
    records = list(records)
    counts = {status: 0 for status in HealthStatus}
    for record in records:
        counts[record.status] += 1

    average = (
        sum(record.average_response_time_ms for record in records) / len(records)
        if records
        else 0.0
    )

    return HealthSummary(
        total_feeds=len(records),
        healthy_feeds=counts[HealthStatus.HEALTHY],
        degraded_feeds=counts[HealthStatus.DEGRADED],
        failed_feeds=counts[HealthStatus.FAILED],
        average_response_time_ms=average,
        details=records,
        cached=cached,
    )


class HealthAggregator:
    """Runs health checks over all active sources."""

    def __init__(
        self,
        monitor: FeedHealthMonitor,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        cache_max_age: Optional[timedelta] = None,
        sleep: Optional[SleepFunc] = None,
        settings: Optional[FeedPulseSettings] = None,
    ):
        settings = settings or get_settings()
        health = settings.health

        self.monitor = monitor
        self.batch_size = batch_size if batch_size is not None else health.batch_size
        self.batch_delay = (
            batch_delay if batch_delay is not None else health.batch_delay_ms / 1000
        )
        self.cache_max_age = (
            cache_max_age
            if cache_max_age is not None
            else timedelta(minutes=health.cache_max_age_minutes)
        )
        self._sleep = sleep
        self.logger = get_logger_for_component("health_aggregator")

    async def check_all(self, sources: Sequence[FeedSource]) -> HealthSummary:
        """Check every active source and summarize the fresh records."""
        active = [source for source in sources if source.active]
        self.logger.info(f"Checking health of {len(active)} feeds")

        scheduler = BatchScheduler(
            batch_size=self.batch_size,
            batch_delay=self.batch_delay,
            sleep=self._sleep,
            name="health check",
        )
        records = await scheduler.run(active, self.monitor.check)
        summary = summarize_records(records)

        self.logger.info(
            f"Feed health check complete: {summary.healthy_feeds} healthy, "
            f"{summary.degraded_feeds} degraded, {summary.failed_feeds} failed"
        )
        return summary

    def cached_summary(self, max_age: Optional[timedelta] = None) -> Optional[HealthSummary]:
        """Summary of stored records if any was checked within max_age."""
        max_age = self.cache_max_age if max_age is None else max_age
        records = self.monitor.list()
        cutoff = self.monitor.now() - max_age

        if not any(record.last_checked_at > cutoff for record in records):
            return None

        return summarize_records(records, cached=True)

    async def summarize_health(
        self, sources: Sequence[FeedSource], force: bool = False
    ) -> HealthSummary:
        """Recent stored summary, or a fresh check_all() when stale or forced."""
        if not force:
            cached = self.cached_summary()
            if cached is not None:
                self.logger.debug("Returning cached feed health summary")
                return cached

        self.logger.info("Performing fresh feed health check")
        return await self.check_all(sources)
