"""
Foundation Tests for FeedPulse
==============================

Test suite for core foundation components: configuration, logging,
exceptions, validation, models and source loading.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest

from feedpulse.config.settings import FeedPulseSettings, load_settings
from feedpulse.ingestion.sources import load_sources
from feedpulse.models import FeedHealthRecord, FeedSource, HealthStatus
from feedpulse.monitoring.health_store import InMemoryHealthStore
from feedpulse.utils.exceptions import (
    ConfigurationError,
    ErrorCode,
    FeedPulseError,
    FeedParseError,
    FeedTimeoutError,
    FeedTransportError,
    RetriesExhaustedError,
    ValidationError,
    describe_error,
    get_user_friendly_message,
    handle_exception,
)
from feedpulse.utils.logging import (
    PerformanceLogger,
    StructuredFormatter,
    get_logger_for_component,
    setup_logger,
)
from feedpulse.utils.validators import URLValidator


class TestConfiguration:
    """Test configuration loading and validation."""

    def test_defaults(self, settings):
        assert settings.fetch.timeout_seconds == 8.0
        assert settings.fetch.max_retries == 3
        assert settings.fetch.backoff_base_ms == 500
        assert settings.fetch.batch_size == 5
        assert settings.fetch.batch_delay_ms == 100
        assert settings.health.max_retries == 2
        assert settings.health.batch_size == 10
        assert settings.health.batch_delay_ms == 0
        assert settings.health.failed_threshold == 4
        assert settings.health.cache_max_age_minutes == 60

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FEEDPULSE_FETCH__MAX_RETRIES", "5")
        monkeypatch.setenv("FEEDPULSE_HEALTH__BATCH_SIZE", "20")
        monkeypatch.setenv("FEEDPULSE_LOGGING__LEVEL", "WARNING")

        settings = FeedPulseSettings(_env_file=None)

        assert settings.fetch.max_retries == 5
        assert settings.health.batch_size == 20
        assert settings.get_effective_log_level() == "WARNING"

    def test_debug_forces_debug_level(self, monkeypatch):
        monkeypatch.setenv("FEEDPULSE_DEBUG", "true")

        settings = FeedPulseSettings(_env_file=None)

        assert settings.get_effective_log_level() == "DEBUG"
        assert not settings.is_production_mode()

    def test_invalid_value_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("FEEDPULSE_FETCH__BATCH_SIZE", "0")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID

    def test_health_retries_bounded_by_fetch_retries(self, monkeypatch):
        monkeypatch.setenv("FEEDPULSE_FETCH__MAX_RETRIES", "2")
        monkeypatch.setenv("FEEDPULSE_HEALTH__MAX_RETRIES", "3")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert "health.max_retries" in exc_info.value.message

    def test_log_directory_created(self, tmp_path, monkeypatch):
        log_file = tmp_path / "logs" / "feedpulse.log"
        monkeypatch.setenv("FEEDPULSE_LOGGING__FILE_PATH", str(log_file))

        settings = FeedPulseSettings(_env_file=None)
        settings.validate_configuration()

        assert log_file.parent.exists()


class TestExceptions:
    """Test exception hierarchy and conversion."""

    def test_error_code_in_str(self):
        error = FeedParseError("bad xml", feed_url="https://example.com/rss")
        assert str(error) == "[F003] bad xml"
        assert error.message == "bad xml"
        assert error.context["feed_url"] == "https://example.com/rss"

    def test_to_dict(self):
        error = FeedTransportError("HTTP 500: Internal Server Error", status=500)
        data = error.to_dict()

        assert data["error_type"] == "FeedTransportError"
        assert data["error_code"] == ErrorCode.FEED_HTTP_ERROR.value
        assert data["context"]["status"] == 500
        assert data["recoverable"] is True

    def test_transport_without_status_is_network_error(self):
        assert FeedTransportError("dns failure").error_code == ErrorCode.FEED_NETWORK_ERROR

    def test_retries_exhausted_message(self):
        error = RetriesExhaustedError(3, FeedTimeoutError("Request timeout after 8.0s"))
        assert error.message == "Failed after 3 attempts: Request timeout after 8.0s"
        assert error.attempts == 3
        assert not error.recoverable

    def test_describe_error(self):
        assert describe_error(ValueError("plain")) == "plain"
        assert describe_error(KeyError()) == "KeyError"
        assert describe_error(ValidationError("bad", field_name="url")) == "bad"

    @pytest.mark.parametrize("exception,expected_type", [
        (TimeoutError("slow"), FeedTimeoutError),
        (ConnectionError("refused"), FeedTransportError),
        (ValueError("bad date"), FeedParseError),
        (RuntimeError("odd"), FeedPulseError),
    ])
    def test_handle_exception_categorizes(self, exception, expected_type):
        logger = MagicMock()

        error = handle_exception(exception, logger, "feed fetch", {"source_id": "s1"})

        assert type(error) is expected_type
        assert error.context["operation"] == "feed fetch"
        assert error.context["source_id"] == "s1"
        logger.debug.assert_called_once()

    def test_handle_exception_passes_through_own_errors(self):
        original = FeedParseError("bad")
        assert handle_exception(original, MagicMock(), "op") is original

    def test_user_friendly_message(self):
        assert "Configuration error" in get_user_friendly_message(ConfigurationError("missing"))
        assert get_user_friendly_message(RuntimeError("x")).startswith("An unexpected error")


class TestLogging:
    """Test logging setup and helpers."""

    def test_component_logger_name_and_context(self):
        adapter = get_logger_for_component("feed_fetcher", source_id="s1")

        assert adapter.logger.name == "feedpulse.feed_fetcher"
        assert adapter.extra == {"component": "feed_fetcher", "source_id": "s1"}

    def test_adapter_merges_extra(self):
        adapter = get_logger_for_component("feed_health")

        _, kwargs = adapter.process("msg", {"extra": {"status": "failed"}})

        assert kwargs["extra"] == {"component": "feed_health", "status": "failed"}

    def test_structured_formatter(self):
        record = logging.LogRecord("feedpulse.test", logging.INFO, __file__, 1, "hello", None, None)
        record.source_id = "s1"
        record.attempt = 2

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["source_id"] == "s1"
        assert data["extra"] == {"attempt": 2}

    def test_file_logging(self, tmp_path):
        log_file = tmp_path / "app.log"
        logger = setup_logger("feedpulse.test_file", level="INFO", log_file=str(log_file), console=False)

        logger.info("written")
        for handler in logger.handlers:
            handler.flush()

        assert "written" in log_file.read_text()
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_performance_logger(self):
        logger = MagicMock()

        with PerformanceLogger(logger, "batch run", items=3) as perf:
            pass

        assert perf.duration is not None
        logger.info.assert_called_once()
        assert logger.info.call_args.kwargs["extra"]["success"] is True

    def test_performance_logger_failure(self):
        logger = MagicMock()

        with pytest.raises(RuntimeError):
            with PerformanceLogger(logger, "batch run"):
                raise RuntimeError("boom")

        logger.error.assert_called_once()


class TestURLValidator:
    """Test feed URL validation."""

    def test_normalizes(self):
        assert URLValidator.validate_feed_url("  HTTPS://Example.COM  ") == "https://example.com/"

    def test_strips_fragment(self):
        assert URLValidator.validate_feed_url("https://example.com/rss#top") == "https://example.com/rss"

    def test_public_address_allowed(self):
        assert URLValidator.validate_feed_url("http://93.184.216.34/rss?x=1") == "http://93.184.216.34/rss?x=1"

    @pytest.mark.parametrize("url", [
        None,
        "",
        "example.com/rss",
        "ftp://example.com/rss",
        "https://",
        "http://127.0.0.1/feed",
        "http://192.168.1.10/rss",
        "http://[::1]/rss",
        "http://feeds.localhost/rss",
    ])
    def test_rejects(self, url):
        with pytest.raises(ValidationError):
            URLValidator.validate_feed_url(url)


class TestModels:
    """Test data models."""

    def test_source_alias(self):
        source = FeedSource.model_validate(
            {"id": "a", "name": "A", "url": "https://a.example.com/rss", "sourceName": "Alpha"}
        )
        assert source.source_name == "Alpha"
        assert source.display_name == "Alpha"
        assert source.category == "General"
        assert source.active

    def test_source_is_frozen(self):
        source = FeedSource(id="a", name="A", url="https://a.example.com/rss")
        with pytest.raises(Exception):
            source.active = False

    def test_naive_timestamps_become_utc(self):
        from datetime import datetime

        record = FeedHealthRecord(
            source_id="a", source_name="A", last_checked_at=datetime(2024, 1, 1, 12, 0)
        )
        assert record.last_checked_at.tzinfo is not None

    def test_needs_attention(self):
        healthy = FeedHealthRecord(source_id="a", source_name="A")
        degraded = FeedHealthRecord(
            source_id="b", source_name="B", status=HealthStatus.DEGRADED, consecutive_failures=1
        )
        assert not healthy.needs_attention
        assert degraded.needs_attention


class TestSourceLoading:
    """Test reading source list files."""

    def test_missing_file(self, tmp_path):
        assert load_sources(tmp_path / "missing.json") == []

    def test_sources_document(self, tmp_path):
        path = tmp_path / "sources.json"
        path.write_text(json.dumps({"sources": [
            {"id": "a", "name": "A", "url": "https://a.example.com/rss", "category": "Tech"},
            {"id": "b", "name": "B", "url": "https://b.example.com/rss", "active": False,
             "sourceName": "Bee"},
        ]}))

        sources = load_sources(path)

        assert [s.id for s in sources] == ["a", "b"]
        assert sources[0].category == "Tech"
        assert not sources[1].active
        assert sources[1].display_name == "Bee"

    def test_bare_list(self, tmp_path):
        path = tmp_path / "sources.json"
        path.write_text(json.dumps([{"id": "a", "name": "A", "url": "https://a.example.com/rss"}]))

        assert len(load_sources(path)) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "sources.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            load_sources(path)

    def test_invalid_source(self, tmp_path):
        path = tmp_path / "sources.json"
        path.write_text(json.dumps({"sources": [{"id": "a"}]}))

        with pytest.raises(ConfigurationError):
            load_sources(path)


class TestHealthStore:
    """Test the in-memory health store."""

    def test_set_get_list_clear(self):
        store = InMemoryHealthStore()
        store.set(FeedHealthRecord(source_id="a", source_name="A"))
        store.set(FeedHealthRecord(source_id="b", source_name="B"))
        store.set(FeedHealthRecord(source_id="a", source_name="A", consecutive_failures=2,
                                   status=HealthStatus.DEGRADED))

        assert len(store) == 2
        assert store.get("a").consecutive_failures == 2
        assert {r.source_id for r in store.list()} == {"a", "b"}

        store.clear()

        assert store.list() == []
        assert store.get("a") is None
