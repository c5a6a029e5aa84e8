"""
Feed Service
===========

Facade over the fetch and health paths. This is the surface other parts of
an application call: every operation returns a complete result value and
none of them raises for a failing feed.
"""

from typing import List, Optional, Sequence

from ..config.settings import get_settings, FeedPulseSettings
from ..models import FeedHealthRecord, FeedSource, HealthSummary
from ..monitoring.feed_health import FeedHealthMonitor
from ..monitoring.health_aggregator import HealthAggregator
from ..monitoring.health_store import HealthStore, get_health_store
from ..processing.batch_scheduler import SleepFunc
from ..processing.feed_fetcher import (
    BatchFetchResult,
    FeedFetcher,
    FeedParser,
    FeedValidation,
    FetchResult,
)


class FeedService:
    """Content fetching and feed health monitoring."""

    def __init__(
        self,
        parser: Optional[FeedParser] = None,
        store: Optional[HealthStore] = None,
        sleep: Optional[SleepFunc] = None,
        settings: Optional[FeedPulseSettings] = None,
    ):
        """Initialize feed service.

        Args:
            parser: Fetch-and-parse primitive (default: aiohttp + feedparser)
            store: Health record store (default: process-wide in-memory store)
            sleep: Awaitable sleep used for backoff and batch pauses
            settings: Application settings
        """
        self.settings = settings or get_settings()
        self.store = store if store is not None else get_health_store()
        self.fetcher = FeedFetcher(parser=parser, sleep=sleep, settings=self.settings)
        self.monitor = FeedHealthMonitor(self.fetcher, store=self.store, settings=self.settings)
        self.aggregator = HealthAggregator(self.monitor, sleep=sleep, settings=self.settings)

    # Content path

    async def fetch_one(
        self, source: FeedSource, max_retries: Optional[int] = None
    ) -> FetchResult:
        return await self.fetcher.fetch_one(source, max_retries=max_retries)

    async def fetch_batch(
        self, sources: Sequence[FeedSource], batch_size: Optional[int] = None
    ) -> BatchFetchResult:
        return await self.fetcher.fetch_batch(sources, batch_size=batch_size)

    async def fetch_category(
        self,
        sources: Sequence[FeedSource],
        category: str,
        batch_size: Optional[int] = None,
    ) -> BatchFetchResult:
        return await self.fetcher.fetch_category(sources, category, batch_size=batch_size)

    async def validate_feed(self, url: str) -> FeedValidation:
        return await self.fetcher.validate_feed(url)

    # Health path

    async def check_health(self, source: FeedSource) -> FeedHealthRecord:
        return await self.monitor.check(source)

    async def check_all_health(self, sources: Sequence[FeedSource]) -> HealthSummary:
        return await self.aggregator.check_all(sources)

    async def summarize_health(
        self, sources: Sequence[FeedSource], force: bool = False
    ) -> HealthSummary:
        return await self.aggregator.summarize_health(sources, force=force)

    def get_health(self, source_id: str) -> Optional[FeedHealthRecord]:
        return self.monitor.get(source_id)

    def list_health(self) -> List[FeedHealthRecord]:
        return self.monitor.list()

    def feeds_needing_attention(self) -> List[FeedHealthRecord]:
        return self.monitor.needing_attention()

    def reset_health_store(self) -> None:
        self.monitor.reset()


# Global service instance
_feed_service: Optional[FeedService] = None


def get_feed_service() -> FeedService:
    """Get the process-wide FeedService."""
    global _feed_service

    if _feed_service is None:
        _feed_service = FeedService()

    return _feed_service
