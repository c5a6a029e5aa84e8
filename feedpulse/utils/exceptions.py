"""
FeedPulse Custom Exceptions
==========================

Exception hierarchy for FeedPulse with error codes, context information,
and user-friendly error messages.

The fetch and health paths never let these escape to their callers; they
are raised inside a single attempt and converted into result values by the
retrying fetcher and the health monitor.
"""

import asyncio
from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Feed acquisition errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"
    FEED_RETRIES_EXHAUSTED = "F006"

    # Health monitoring errors (H001-H099)
    HEALTH_CHECK_FAILED = "H001"
    HEALTH_CHECK_UNEXPECTED = "H002"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"

    # System errors (S001-S099)
    SYSTEM_UNEXPECTED = "S001"


class FeedPulseError(Exception):
    """Base exception for all FeedPulse errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize FeedPulse error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": self.message,
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(FeedPulseError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.pop("user_message", f"Configuration error: {message}"),
            **kwargs,
        )


class ValidationError(FeedPulseError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.pop(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.pop("recoverable", False),
            **kwargs,
        )


class FeedError(FeedPulseError):
    """Feed acquisition and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for FeedPulseError
        """
        context = kwargs.pop("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.pop(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.pop("recoverable", True),
            **kwargs,
        )


class FeedTransportError(FeedError):
    """Network, DNS, connection or HTTP status failures."""

    def __init__(self, message: str, status: Optional[int] = None, **kwargs):
        context = kwargs.pop("context", {})
        if status is not None:
            context["status"] = status
        kwargs.setdefault(
            "error_code",
            ErrorCode.FEED_HTTP_ERROR if status is not None else ErrorCode.FEED_NETWORK_ERROR,
        )
        super().__init__(message, context=context, **kwargs)
        self.status = status


class FeedTimeoutError(FeedError):
    """A fetch attempt exceeded its deadline."""

    def __init__(self, message: str, timeout: Optional[float] = None, **kwargs):
        context = kwargs.pop("context", {})
        if timeout is not None:
            context["timeout_seconds"] = timeout
        kwargs.setdefault("error_code", ErrorCode.FEED_FETCH_TIMEOUT)
        super().__init__(message, context=context, **kwargs)


class FeedParseError(FeedError):
    """Malformed feed payload."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_PARSE_ERROR)
        super().__init__(message, **kwargs)


class RetriesExhaustedError(FeedError):
    """All attempts for one source failed.

    Carries the last underlying failure so the exhausted message can wrap it.
    """

    def __init__(self, attempts: int, last_error: Optional[BaseException], **kwargs):
        self.attempts = attempts
        self.last_error = last_error
        last_message = describe_error(last_error) if last_error else "unknown error"
        kwargs.setdefault("error_code", ErrorCode.FEED_RETRIES_EXHAUSTED)
        kwargs.setdefault("recoverable", False)
        super().__init__(f"Failed after {attempts} attempts: {last_message}", **kwargs)


class HealthCheckError(FeedPulseError):
    """Unexpected failure caught at the health monitor boundary."""

    def __init__(self, message: str, source_id: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if source_id:
            context["source_id"] = source_id

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.HEALTH_CHECK_UNEXPECTED),
            context=context,
            user_message=kwargs.pop("user_message", "Feed health check failed"),
            recoverable=kwargs.pop("recoverable", True),
            **kwargs,
        )


# Exception handling utilities


def describe_error(exception: BaseException) -> str:
    """Plain message for an exception, without the error code prefix."""
    if isinstance(exception, FeedPulseError):
        return exception.message
    message = str(exception)
    return message or type(exception).__name__


def handle_exception(
    exception: BaseException,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> FeedPulseError:
    """Convert generic exceptions to FeedPulse exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        FeedPulse exception with proper categorization
    """
    context = dict(context or {})
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, FeedPulseError):
        logger.debug(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    if isinstance(exception, (asyncio.TimeoutError, TimeoutError)):
        error = FeedTimeoutError(
            f"Request timeout during {operation}",
            context=context,
        )
    elif isinstance(exception, (ConnectionError, OSError)):
        error = FeedTransportError(
            f"Network error during {operation}: {describe_error(exception)}",
            context=context,
        )
    elif isinstance(exception, (ValueError, TypeError, KeyError, AttributeError)):
        error = FeedParseError(
            f"Parse error during {operation}: {describe_error(exception)}",
            context=context,
        )
    else:
        error = FeedPulseError(
            message=f"Unexpected error during {operation}: {describe_error(exception)}",
            error_code=ErrorCode.SYSTEM_UNEXPECTED,
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.debug(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: BaseException) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, FeedPulseError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
