"""
FeedPulse Services
=================

Service layer shared by the CLI and any embedding application.
"""

from .feed_service import FeedService, get_feed_service

__all__ = ['FeedService', 'get_feed_service']
