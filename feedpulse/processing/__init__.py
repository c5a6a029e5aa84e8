"""
FeedPulse Processing Module
==========================

Retrying feed fetching and bounded-concurrency batch scheduling.
"""

from .batch_scheduler import BatchScheduler
from .feed_fetcher import (
    AiohttpFeedParser,
    BatchFetchResult,
    FeedFetcher,
    FeedParser,
    FeedValidation,
    FetchResult,
)

__all__ = [
    'BatchScheduler',
    'AiohttpFeedParser',
    'BatchFetchResult',
    'FeedFetcher',
    'FeedParser',
    'FeedValidation',
    'FetchResult',
]
