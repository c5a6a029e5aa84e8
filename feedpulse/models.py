"""
FeedPulse Data Models
====================

Pydantic models for feed sources, normalized articles and per-source
health state.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FeedSource(BaseModel):
    """A configured remote feed."""
    id: str = Field(..., min_length=1, description="Stable source identifier")
    name: str = Field(..., min_length=1, description="Configured source name")
    url: str = Field(..., min_length=1, description="Feed URL")
    category: str = Field(default="General", description="Category articles are filed under")
    active: bool = Field(default=True, description="Whether the source takes part in fetch cycles")
    source_name: str = Field(default="", alias="sourceName", description="Display name shown to readers")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def display_name(self) -> str:
        """Display name, falling back to the configured name."""
        return self.source_name or self.name

    def __str__(self) -> str:
        return f"FeedSource({self.id}:{self.display_name})"


class ArticleRecord(BaseModel):
    """One normalized item from a feed."""
    id: str = Field(..., description="GUID, link or '<source-id>-<index>'")
    title: str = Field(..., description="Article title")
    link: str = Field(default="", description="Article URL")
    pub_date: str = Field(..., description="Publication date as published by the feed")
    iso_date: str = Field(..., description="Publication date in ISO 8601")
    author: Optional[str] = Field(default=None)
    content: str = Field(default="", description="Raw article content")
    content_snippet: str = Field(default="", description="Plain-text preview")
    categories: List[str] = Field(default_factory=list)
    guid: Optional[str] = Field(default=None)
    image_url: Optional[str] = Field(default=None)
    source_id: str = Field(..., description="Owning FeedSource.id")
    source_name: str = Field(..., description="Owning source display name")
    category: str = Field(..., description="Owning source category")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"ArticleRecord({self.title[:50]}...)"


class HealthStatus(str, Enum):
    """Feed reliability classification."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


class FeedHealthRecord(BaseModel):
    """Rolling reliability state for one source."""
    source_id: str
    source_name: str
    status: HealthStatus = HealthStatus.HEALTHY
    last_checked_at: datetime = Field(default_factory=utc_now)
    last_successful_fetch_at: Optional[datetime] = None
    consecutive_failures: int = Field(default=0, ge=0)
    average_response_time_ms: float = Field(default=0.0, ge=0.0)
    last_error: Optional[str] = None

    @field_validator("last_checked_at", "last_successful_fetch_at")
    @classmethod
    def ensure_utc(cls, v):
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def needs_attention(self) -> bool:
        return self.status != HealthStatus.HEALTHY

    def __str__(self) -> str:
        return f"FeedHealthRecord({self.source_id}:{self.status.value})"


class HealthSummary(BaseModel):
    """Aggregate view across all active sources."""
    total_feeds: int = 0
    healthy_feeds: int = 0
    degraded_feeds: int = 0
    failed_feeds: int = 0
    average_response_time_ms: float = 0.0
    details: List[FeedHealthRecord] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)
    cached: bool = Field(default=False, description="Built from stored records without new checks")

    @property
    def health_percentage(self) -> float:
        """Percentage of feeds that are healthy."""
        if self.total_feeds == 0:
            return 0.0
        return (self.healthy_feeds / self.total_feeds) * 100
