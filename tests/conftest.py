"""
PyTest Configuration and Fixtures
=================================

Shared fixtures for FeedPulse tests: sample sources, a scripted feed
parser, a recording sleep and a manual clock so retry backoff and batch
pacing can be asserted without real waiting.
"""

import os
import sys
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["FEEDPULSE_LOGGING__CONSOLE_LOGGING"] = "false"


class ScriptedParser:
    """FeedParser whose outcomes are scripted per URL.

    Each URL maps to a list of outcomes consumed one per call; the last
    outcome repeats once the list is exhausted. An outcome is either a
    parsed-feed dict to return or an exception instance to raise.
    """

    def __init__(self, outcomes=None):
        self.outcomes = {url: list(items) for url, items in (outcomes or {}).items()}
        self.calls = []

    def script(self, url, *outcomes):
        self.outcomes[url] = list(outcomes)

    async def parse_url(self, url):
        self.calls.append(url)
        items = self.outcomes.get(url)
        if not items:
            raise ConnectionError(f"No route to {url}")

        outcome = items.pop(0) if len(items) > 1 else items[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def call_count(self, url):
        return self.calls.count(url)


class RecordingSleep:
    """Awaitable sleep that records requested delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class ManualClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start=100.0):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


def make_feed(*entries, title="Test Feed"):
    """Parsed-feed dict shaped like feedparser output."""
    return {"feed": {"title": title}, "entries": list(entries), "bozo": False}


@pytest.fixture
def settings():
    """Settings built from defaults only."""
    from feedpulse.config.settings import FeedPulseSettings

    return FeedPulseSettings(_env_file=None)


@pytest.fixture
def sample_sources():
    """Generate sample feed sources for testing."""
    from feedpulse.models import FeedSource

    return [
        FeedSource(id="tech", name="Tech News", url="https://tech.example.com/feed.xml",
                   category="Technology", source_name="Tech Daily"),
        FeedSource(id="science", name="Science", url="https://science.example.com/rss",
                   category="Science"),
        FeedSource(id="archive", name="Archive", url="https://archive.example.com/rss",
                   category="Technology", active=False),
    ]


@pytest.fixture
def parser():
    return ScriptedParser()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def health_store():
    """Fresh in-memory health store per test."""
    from feedpulse.monitoring.health_store import InMemoryHealthStore

    return InMemoryHealthStore()
