"""
FeedPulse Logging
=================

Logging for the fetch and health paths. Every component logs through a
``feedpulse.<component>`` adapter that stamps records with the component
name (and a source id where one applies), so a single feed can be followed
across retries, batches and health checks.

Output is either a compact console line or one JSON object per record;
log files are always JSON and rotate by size.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


ROOT_LOGGER_NAME = "feedpulse"

# Attributes every LogRecord carries; anything else arrived through ``extra``
_STANDARD_ATTRIBUTES = set(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

# Context promoted to top-level JSON keys instead of staying under "extra"
_PROMOTED_FIELDS = ("component", "source_id", "feed_url", "error_code")

# Third-party loggers that are noisy at INFO
_QUIET_LIBRARIES = ("aiohttp", "asyncio", "feedparser", "charset_normalizer")


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRIBUTES
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with feed context at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        context = _record_context(record)
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in _PROMOTED_FIELDS:
            if key in context:
                payload[key] = context.pop(key)

        if context:
            payload["extra"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Single-line console output tagged with component and source."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        component = getattr(record, "component", record.name)
        source_id = getattr(record, "source_id", None)
        tag = f"{component}/{source_id}" if source_id else component

        level = f"{record.levelname:<7}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level}{self.RESET}"

        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{clock} {level} [{tag}] {record.getMessage()}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _build_handlers(
    console: bool,
    structured: bool,
    log_file: Optional[str],
    max_file_size: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []

    if console:
        # stderr keeps CLI tables on stdout clean
        stream = logging.StreamHandler(sys.stderr)
        if structured:
            stream.setFormatter(StructuredFormatter())
        else:
            stream.setFormatter(ColoredConsoleFormatter(use_color=sys.stderr.isatty()))
        handlers.append(stream)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )
        rotating.setFormatter(StructuredFormatter())
        handlers.append(rotating)

    return handlers


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Install FeedPulse handlers on a logger, replacing any it already has.

    Args:
        name: Logger to configure
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Rotating JSON log file (optional)
        console: Whether to write to stderr
        structured: JSON instead of the console line format on stderr
        max_file_size: Rotation size in bytes
        backup_count: Rotated files kept

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    for handler in _build_handlers(console, structured, log_file, max_file_size, backup_count):
        logger.addHandler(handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter whose fixed context is merged under per-call ``extra``."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    source_id: Optional[str] = None,
) -> LoggerAdapter:
    """Logger for one FeedPulse component, e.g. 'feed_fetcher' or 'feed_health'."""
    context: Dict[str, Any] = {"component": component_name}
    if source_id:
        context["source_id"] = source_id

    return LoggerAdapter(logging.getLogger(f"{ROOT_LOGGER_NAME}.{component_name}"), context)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Configure the ``feedpulse`` logger tree for the CLI or an embedding app.

    Args:
        log_level: Level for every FeedPulse logger
        log_file: Rotating JSON log file (optional)
        enable_console: Whether to write to stderr
        structured_logging: JSON instead of the console line format on stderr
        max_file_size: Rotation size in bytes
        backup_count: Rotated files kept
    """
    setup_logger(
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_file_size=max_file_size,
        backup_count=backup_count,
    )

    for library in _QUIET_LIBRARIES:
        logging.getLogger(library).setLevel(logging.WARNING)


class PerformanceLogger:
    """Times a block and logs how long it took and whether it raised.

    ``duration`` holds the elapsed seconds once the block exits.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: Optional[float] = None
        self.duration: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.monotonic()
        self.logger.debug(f"{self.operation} started", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is None:
            return

        self.duration = time.monotonic() - self.start_time
        context = {
            **self.context,
            "duration_seconds": round(self.duration, 3),
            "success": exc_type is None,
        }

        if exc_type is None:
            self.logger.info(f"{self.operation} finished in {self.duration:.3f}s", extra=context)
        else:
            self.logger.error(
                f"{self.operation} failed after {self.duration:.3f}s: {exc_val}", extra=context
            )
