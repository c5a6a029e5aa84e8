"""
Feed Health Monitoring Module
============================

Per-source health state, the health record store and aggregation across sources.
"""

from .feed_health import FeedHealthMonitor, status_for_failures
from .health_aggregator import HealthAggregator, summarize_records
from .health_store import HealthStore, InMemoryHealthStore, get_health_store

__all__ = [
    'FeedHealthMonitor',
    'status_for_failures',
    'HealthAggregator',
    'summarize_records',
    'HealthStore',
    'InMemoryHealthStore',
    'get_health_store',
]
