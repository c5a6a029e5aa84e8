"""
FeedPulse Ingestion Module
=========================

Feed item normalization and source list loading.
"""

from .content_extractor import extract_article, extract_articles, extract_image_url
from .sources import load_sources

__all__ = ['extract_article', 'extract_articles', 'extract_image_url', 'load_sources']
