"""
FeedPulse - Feed Acquisition and Health Monitoring
==================================================

Fetches many unreliable RSS/Atom sources with retries and paced batching,
normalizes their items into article records, and tracks each source's
reliability as healthy, degraded or failed.

Main Components:
- Ingestion: feed item content extraction and source list loading
- Processing: retrying fetcher and batch scheduler
- Monitoring: per-source health state, health store and aggregation
- Services: FeedService facade over both paths
"""

__version__ = "1.0.0"
__author__ = "FeedPulse Development Team"
__description__ = "Feed acquisition and health monitoring"

from .config.settings import get_settings
from .models import ArticleRecord, FeedHealthRecord, FeedSource, HealthStatus, HealthSummary
from .services.feed_service import FeedService, get_feed_service
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedPulseError

__all__ = [
    "get_settings",
    "ArticleRecord",
    "FeedHealthRecord",
    "FeedSource",
    "HealthStatus",
    "HealthSummary",
    "FeedService",
    "get_feed_service",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedPulseError",
]
