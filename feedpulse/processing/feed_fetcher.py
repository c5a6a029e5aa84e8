"""
RSS Feed Fetcher
===============

Retrying fetch-and-parse for feed sources, with exponential backoff, a
per-attempt deadline and batched concurrent fetching.

FeedFetcher.fetch_one() never raises: transport, timeout and parse failures
are all retried the same way and, once the attempts are exhausted, reported
in the returned FetchResult.
"""

import asyncio
import ssl
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

import aiohttp
import certifi
import feedparser

from ..config.settings import get_settings, FeedPulseSettings
from ..ingestion.content_extractor import extract_articles
from ..models import ArticleRecord, FeedSource
from ..utils.exceptions import (
    FeedParseError,
    FeedTimeoutError,
    FeedTransportError,
    RetriesExhaustedError,
    ValidationError,
    describe_error,
    handle_exception,
)
from ..utils.logging import get_logger_for_component
from ..utils.validators import URLValidator
from .batch_scheduler import BatchScheduler, SleepFunc


class FeedParser(Protocol):
    """Fetch-and-parse primitive used by FeedFetcher."""

    async def parse_url(self, url: str) -> Any:
        """Return a parsed feed exposing ``entries`` (and optionally ``feed``)."""
        ...


@dataclass
class FetchResult:
    """Outcome of one fetch cycle for a source."""

    source: FeedSource
    articles: List[ArticleRecord] = field(default_factory=list)
    error: Optional[str] = None
    response_time_ms: float = 0.0
    attempts: int = 0

    def __post_init__(self):
        if self.error is not None:
            self.articles = []

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def article_count(self) -> int:
        return len(self.articles)


@dataclass
class BatchFetchResult:
    """Aggregate of a batched fetch over many sources."""

    articles: List[ArticleRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    success_count: int = 0
    error_count: int = 0
    total_time_ms: float = 0.0
    results: List[FetchResult] = field(default_factory=list)


@dataclass
class FeedValidation:
    """Result of a one-shot feed URL check."""

    url: str
    valid: bool
    error: Optional[str] = None
    feed_title: Optional[str] = None
    item_count: Optional[int] = None
    has_https: bool = False


def parse_feed_document(
    content: bytes, feed_url: str, headers: Optional[Dict[str, str]] = None
) -> feedparser.FeedParserDict:
    """Parse a downloaded feed body.

    Raises:
        FeedParseError: If feedparser flags the payload and finds no entries
    """
    parsed = feedparser.parse(content, response_headers=headers or {})

    if parsed.get("bozo") and not parsed.get("entries"):
        reason = parsed.get("bozo_exception") or "Invalid XML structure"
        raise FeedParseError(f"Feed parse error: {reason}", feed_url=feed_url)

    return parsed


class AiohttpFeedParser:
    """FeedParser backed by aiohttp and feedparser.

    Usable directly (one session per request) or as an async context manager
    holding a shared session for a whole fetch cycle.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        max_connections: int = 20,
        settings: Optional[FeedPulseSettings] = None,
    ):
        settings = settings or get_settings()
        self.timeout = timeout or settings.fetch.timeout_seconds
        self.user_agent = user_agent or settings.fetch.user_agent
        self.max_connections = max_connections
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._session: Optional[aiohttp.ClientSession] = None

    def _create_session(self) -> aiohttp.ClientSession:
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit=self.max_connections,
            limit_per_host=5,
        )
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }
        return aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers=headers,
        )

    async def __aenter__(self) -> "AiohttpFeedParser":
        if self._session is None:
            self._session = self._create_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def parse_url(self, url: str) -> feedparser.FeedParserDict:
        if self._session is not None:
            content, headers = await self._download(self._session, url)
        else:
            async with self._create_session() as session:
                content, headers = await self._download(session, url)

        return parse_feed_document(content, url, headers)

    async def _download(self, session: aiohttp.ClientSession, url: str):
        try:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FeedTransportError(
                        f"HTTP {response.status}: {response.reason}",
                        status=response.status,
                        feed_url=url,
                    )
                content = await response.read()
                return content, dict(response.headers)
        except asyncio.TimeoutError as e:
            raise FeedTimeoutError(
                f"Request timeout after {self.timeout}s", timeout=self.timeout, feed_url=url
            ) from e
        except aiohttp.ClientError as e:
            raise FeedTransportError(f"Fetch error: {e}", feed_url=url) from e


class FeedFetcher:
    """Retrying feed fetcher with batched concurrent fetching."""

    def __init__(
        self,
        parser: Optional[FeedParser] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        snippet_length: Optional[int] = None,
        sleep: Optional[SleepFunc] = None,
        clock: Optional[Callable[[], float]] = None,
        settings: Optional[FeedPulseSettings] = None,
    ):
        """Initialize feed fetcher.

        Args:
            parser: Fetch-and-parse primitive (default: AiohttpFeedParser)
            timeout: Per-attempt deadline in seconds
            max_retries: Default number of attempts per source
            backoff_base: Delay in seconds before the first retry; doubles per attempt
            batch_size: Default batch size for fetch_batch()
            batch_delay: Pause in seconds between batches
            snippet_length: Length of snippets derived from content
            sleep: Awaitable sleep for backoff and batch pauses
            clock: Monotonic clock in seconds used for response times
            settings: Settings used for every value not given explicitly
        """
        settings = settings or get_settings()
        fetch = settings.fetch

        self.timeout = timeout if timeout is not None else fetch.timeout_seconds
        self.max_retries = max_retries if max_retries is not None else fetch.max_retries
        self.backoff_base = (
            backoff_base if backoff_base is not None else fetch.backoff_base_ms / 1000
        )
        self.batch_size = batch_size if batch_size is not None else fetch.batch_size
        self.batch_delay = (
            batch_delay if batch_delay is not None else fetch.batch_delay_ms / 1000
        )
        self.snippet_length = (
            snippet_length if snippet_length is not None else fetch.snippet_length
        )
        self.parser = parser or AiohttpFeedParser(timeout=self.timeout, settings=settings)
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self.logger = get_logger_for_component("feed_fetcher")

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        return self.backoff_base * (2 ** attempt)

    async def fetch_one(
        self, source: FeedSource, max_retries: Optional[int] = None
    ) -> FetchResult:
        """Fetch and parse one source with retries.

        Args:
            source: Feed source to fetch
            max_retries: Attempts to make (default from configuration)

        Returns:
            FetchResult with articles, or with an error after all attempts failed
        """
        attempts = self.max_retries if max_retries is None else max_retries
        attempts = max(1, attempts)
        start = self._clock()
        last_error: Optional[BaseException] = None
        context = {"source_id": source.id, "feed_url": source.url}

        for attempt in range(attempts):
            try:
                articles = await self._attempt(source)
                elapsed = self._elapsed_ms(start)

                if attempt > 0:
                    self.logger.info(
                        f"Fetch for {source.name} succeeded on attempt {attempt + 1}",
                        extra=context,
                    )
                self.logger.debug(
                    f"Fetched {len(articles)} articles from {source.name} in {elapsed:.0f}ms",
                    extra=context,
                )
                return FetchResult(
                    source=source,
                    articles=articles,
                    response_time_ms=elapsed,
                    attempts=attempt + 1,
                )

            except Exception as e:
                last_error = e
                error = handle_exception(e, self.logger, "feed fetch", context)
                self.logger.warning(
                    f"Fetch attempt {attempt + 1}/{attempts} failed for {source.name}: "
                    f"{describe_error(e)}",
                    extra={**context, "error_type": type(error).__name__},
                )

                if attempt < attempts - 1:
                    await self._sleep(self.backoff_delay(attempt))

        exhausted = RetriesExhaustedError(attempts, last_error, feed_url=source.url)
        self.logger.error(f"{source.name}: {exhausted.message}", extra=context)

        return FetchResult(
            source=source,
            error=exhausted.message,
            response_time_ms=self._elapsed_ms(start),
            attempts=attempts,
        )

    async def fetch_batch(
        self, sources: Sequence[FeedSource], batch_size: Optional[int] = None
    ) -> BatchFetchResult:
        """Fetch all active sources in paced batches.

        Args:
            sources: Sources to fetch; inactive ones are skipped
            batch_size: Sources fetched concurrently per batch

        Returns:
            BatchFetchResult with every successful article and every error
        """
        start = self._clock()
        active = [source for source in sources if source.active]
        scheduler = BatchScheduler(
            batch_size=batch_size or self.batch_size,
            batch_delay=self.batch_delay,
            sleep=self._sleep,
            name="feed fetch",
        )

        self.logger.info(f"Starting fetch of {len(active)} active feeds")
        results = await scheduler.run(active, self.fetch_one)

        batch = BatchFetchResult(results=results)
        for result in results:
            if result.error is not None:
                batch.errors.append(result.error)
                batch.error_count += 1
            else:
                batch.articles.extend(result.articles)
                batch.success_count += 1

        batch.total_time_ms = self._elapsed_ms(start)
        self.logger.info(
            f"Feed fetch complete: {batch.success_count} succeeded, "
            f"{batch.error_count} failed, {len(batch.articles)} articles "
            f"in {batch.total_time_ms:.0f}ms"
        )
        return batch

    async def fetch_category(
        self,
        sources: Sequence[FeedSource],
        category: str,
        batch_size: Optional[int] = None,
    ) -> BatchFetchResult:
        """fetch_batch() restricted to one category."""
        selected = [source for source in sources if source.category == category]
        return await self.fetch_batch(selected, batch_size=batch_size)

    async def validate_feed(self, url: str) -> FeedValidation:
        """Check that a URL serves a parseable feed, with a single attempt."""
        has_https = isinstance(url, str) and url.strip().lower().startswith("https://")

        try:
            normalized = URLValidator.validate_feed_url(url)
        except ValidationError as e:
            return FeedValidation(url=str(url), valid=False, error=e.message, has_https=has_https)

        try:
            parsed = await asyncio.wait_for(self.parser.parse_url(normalized), timeout=self.timeout)
        except asyncio.TimeoutError:
            return FeedValidation(
                url=normalized,
                valid=False,
                error=f"Request timeout after {self.timeout}s",
                has_https=has_https,
            )
        except Exception as e:
            handle_exception(e, self.logger, "feed validation", {"feed_url": normalized})
            return FeedValidation(
                url=normalized, valid=False, error=describe_error(e), has_https=has_https
            )

        feed_info = _get(parsed, "feed") or {}
        title = _get(feed_info, "title")
        return FeedValidation(
            url=normalized,
            valid=True,
            feed_title=title or None,
            item_count=len(_get(parsed, "entries") or []),
            has_https=has_https,
        )

    async def _attempt(self, source: FeedSource) -> List[ArticleRecord]:
        try:
            parsed = await asyncio.wait_for(self.parser.parse_url(source.url), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise FeedTimeoutError(
                f"Request timeout after {self.timeout}s",
                timeout=self.timeout,
                feed_url=source.url,
            ) from e

        entries = _get(parsed, "entries") or []
        return extract_articles(entries, source, snippet_length=self.snippet_length)

    def _elapsed_ms(self, start: float) -> float:
        return (self._clock() - start) * 1000


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)
