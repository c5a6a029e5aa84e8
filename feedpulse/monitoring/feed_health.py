"""
Feed Health Monitor
==================

Runs a reduced-retry fetch for one source and folds the outcome into that
source's FeedHealthRecord.

Status is driven only by the consecutive failure count:

    0                       healthy
    1 .. failed_threshold-1 degraded
    >= failed_threshold     failed

The average response time is a two-sample blend with the previous value,
``(previous + new) / 2``, not a mean over the whole history.
"""

from datetime import datetime
from typing import Callable, List, Optional

from ..config.settings import get_settings, FeedPulseSettings
from ..models import FeedHealthRecord, FeedSource, HealthStatus, utc_now
from ..processing.feed_fetcher import FeedFetcher, FetchResult
from ..utils.exceptions import HealthCheckError, describe_error
from ..utils.logging import get_logger_for_component
from .health_store import HealthStore, get_health_store


DEFAULT_FAILED_THRESHOLD = 4


def status_for_failures(
    consecutive_failures: int, failed_threshold: int = DEFAULT_FAILED_THRESHOLD
) -> HealthStatus:
    """Classify a source from its consecutive failure count."""
    if consecutive_failures <= 0:
        return HealthStatus.HEALTHY
    if consecutive_failures >= failed_threshold:
        return HealthStatus.FAILED
    return HealthStatus.DEGRADED


def blend_response_time(previous: Optional[float], latest: float) -> float:
    if previous is None:
        return latest
    return (previous + latest) / 2


class FeedHealthMonitor:
    """Per-source health state machine."""

    def __init__(
        self,
        fetcher: FeedFetcher,
        store: Optional[HealthStore] = None,
        max_retries: Optional[int] = None,
        failed_threshold: Optional[int] = None,
        now: Optional[Callable[[], datetime]] = None,
        settings: Optional[FeedPulseSettings] = None,
    ):
        """Initialize health monitor.

        Args:
            fetcher: Fetcher used for the check
            store: Record store (default: process-wide in-memory store)
            max_retries: Attempts per check (default from configuration)
            failed_threshold: Consecutive failures at which a source is failed
            now: Clock returning aware UTC datetimes
            settings: Settings used for every value not given explicitly
        """
        settings = settings or get_settings()

        self.fetcher = fetcher
        self.store = store if store is not None else get_health_store()
        self.max_retries = (
            max_retries if max_retries is not None else settings.health.max_retries
        )
        self.failed_threshold = (
            failed_threshold if failed_threshold is not None else settings.health.failed_threshold
        )
        self.now = now or utc_now
        self.logger = get_logger_for_component("feed_health")

    async def check(self, source: FeedSource) -> FeedHealthRecord:
        """Check one source and store its updated record.

        Never raises: unexpected exceptions count as a failed check.
        """
        try:
            result = await self.fetcher.fetch_one(source, max_retries=self.max_retries)
        except Exception as e:
            error = HealthCheckError(describe_error(e), source_id=source.id)
            self.logger.error(
                f"Feed health check exception for {source.name}: {error.message}",
                exc_info=True,
                extra=error.to_dict(),
            )
            result = FetchResult(source=source, error=error.message, response_time_ms=0.0)

        return self.record_result(source, result)

    def record_result(self, source: FeedSource, result: FetchResult) -> FeedHealthRecord:
        """Fold one fetch outcome into the source's record."""
        previous = self.store.get(source.id)
        checked_at = self.now()
        average = blend_response_time(
            previous.average_response_time_ms if previous else None,
            result.response_time_ms or 0.0,
        )

        if result.success:
            record = FeedHealthRecord(
                source_id=source.id,
                source_name=source.display_name,
                status=HealthStatus.HEALTHY,
                last_checked_at=checked_at,
                last_successful_fetch_at=checked_at,
                consecutive_failures=0,
                average_response_time_ms=average,
                last_error=None,
            )
        else:
            failures = (previous.consecutive_failures if previous else 0) + 1
            record = FeedHealthRecord(
                source_id=source.id,
                source_name=source.display_name,
                status=status_for_failures(failures, self.failed_threshold),
                last_checked_at=checked_at,
                last_successful_fetch_at=previous.last_successful_fetch_at if previous else None,
                consecutive_failures=failures,
                average_response_time_ms=average,
                last_error=result.error,
            )
            self.logger.warning(
                f"Feed health check failed for {source.name} "
                f"({failures} consecutive): {result.error}",
                extra={"source_id": source.id, "status": record.status.value},
            )

        self.store.set(record)
        return record

    def get(self, source_id: str) -> Optional[FeedHealthRecord]:
        return self.store.get(source_id)

    def list(self) -> List[FeedHealthRecord]:
        return self.store.list()

    def needing_attention(self) -> List[FeedHealthRecord]:
        """Degraded and failed records."""
        return [record for record in self.store.list() if record.needs_attention]

    def reset(self) -> None:
        self.store.clear()
