"""
FeedPulse Configuration System
=============================

Fetch, health-check and logging settings. Values come from FEEDPULSE_*
environment variables (nested with "__", e.g. FEEDPULSE_FETCH__MAX_RETRIES)
or a .env file, falling back to the Field defaults below.
"""

import os
from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Log level names accepted by FEEDPULSE_LOGGING__LEVEL."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FetchSettings(BaseModel):
    """Content fetch configuration."""
    timeout_seconds: float = Field(default=8.0, gt=0, le=120, description="Per-attempt fetch deadline in seconds")
    max_retries: int = Field(default=3, ge=1, le=10, description="Attempts per source for content fetches")
    backoff_base_ms: int = Field(default=500, ge=0, le=60000, description="Backoff before retry n is base * 2^n")
    batch_size: int = Field(default=5, ge=1, le=100, description="Sources fetched concurrently per batch")
    batch_delay_ms: int = Field(default=100, ge=0, le=60000, description="Pause between content fetch batches")
    user_agent: str = Field(default="FeedPulse/1.0", description="User-Agent header sent to feed servers")
    snippet_length: int = Field(default=200, ge=1, le=5000, description="Length of derived article snippets")


class HealthSettings(BaseModel):
    """Feed health monitoring configuration."""
    max_retries: int = Field(default=2, ge=1, le=10, description="Attempts per source for health checks")
    batch_size: int = Field(default=10, ge=1, le=100, description="Sources checked concurrently per batch")
    batch_delay_ms: int = Field(default=0, ge=0, le=60000, description="Pause between health check batches")
    failed_threshold: int = Field(default=4, ge=2, description="Consecutive failures before a feed is failed")
    cache_max_age_minutes: int = Field(default=60, ge=0, le=10080, description="Age under which stored health is reused")


class LoggingSettings(BaseModel):
    """Log output: level, optional rotating JSON file, console format."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class FeedPulseSettings(BaseSettings):
    """Complete FeedPulse configuration."""

    fetch: FetchSettings = Field(default_factory=FetchSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="FeedPulse", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDPULSE_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Check cross-field constraints that Field bounds cannot express."""
        errors = []

        if self.health.max_retries > self.fetch.max_retries:
            errors.append(
                f"health.max_retries ({self.health.max_retries}) must not exceed "
                f"fetch.max_retries ({self.fetch.max_retries})"
            )

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Cannot create log directory for {self.logging.file_path}: {e}")

        if errors:
            raise ConfigurationError(
                f"Invalid FeedPulse configuration: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def is_production_mode(self) -> bool:
        """True when ENV=production and debug is off."""
        return not self.debug and os.getenv("ENV", "development").lower() == "production"

    def get_effective_log_level(self) -> str:
        """Configured log level, or DEBUG when debug is on."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> FeedPulseSettings:
    """Load settings from environment variables and defaults.

    Environment variables override Pydantic Field defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = FeedPulseSettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


# Global settings instance
_settings: Optional[FeedPulseSettings] = None


def get_settings(reload: bool = False) -> FeedPulseSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
