"""
Feed URL Validation
===================

Shape checks applied before a URL is handed to the feed parser by
``validate_feed``. Only public http(s) hosts pass; loopback, private and
link-local addresses are refused so validation cannot be pointed at the
machine it runs on.
"""

import ipaddress
from urllib.parse import urlsplit, urlunsplit

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """Feed URL checks and normalization."""

    FEED_SCHEMES = ("http", "https")
    BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost"}

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Check a feed URL and return it normalized.

        The scheme and host are lower-cased, an empty path becomes "/" and
        any fragment is dropped.

        Raises:
            ValidationError: If the URL is empty, not http(s), has no host,
                or points at a local or private address
        """
        if not isinstance(url, str) or not url.strip():
            raise ValidationError(
                "Feed URL is required",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url",
            )

        try:
            parts = urlsplit(url.strip())
            hostname = parts.hostname
        except ValueError as e:
            raise ValidationError(f"Malformed feed URL: {e}", field_name="url") from e

        scheme = parts.scheme.lower()
        if scheme not in cls.FEED_SCHEMES:
            raise ValidationError(
                f"Feed URL must use http or https, not '{scheme or 'none'}'",
                field_name="url",
            )

        if not hostname:
            raise ValidationError("Feed URL has no host", field_name="url")

        if cls.is_local_host(hostname):
            raise ValidationError(
                f"Feed URL points at a local or private host: {hostname}",
                field_name="url",
            )

        return urlunsplit((scheme, parts.netloc.lower(), parts.path or "/", parts.query, ""))

    @classmethod
    def is_local_host(cls, hostname: str) -> bool:
        """True for loopback names and non-public IP literals."""
        hostname = hostname.lower().rstrip(".")
        if hostname in cls.BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
            return True

        try:
            address = ipaddress.ip_address(hostname)
        except ValueError:
            return False

        return (
            address.is_loopback
            or address.is_private
            or address.is_link_local
            or address.is_unspecified
        )
