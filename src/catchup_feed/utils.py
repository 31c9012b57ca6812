"""Small helpers shared across the package."""

import sys
from datetime import datetime, timezone
from urllib.parse import urlparse

from loguru import logger

from catchup_feed.errors import ValidationError

MAX_URL_LENGTH = 2048


def setup_logging(log_level: str = "INFO") -> None:  # pragma: no cover
    """Replace loguru's default sink with a single stderr sink at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=log_level.upper(), colorize=True, backtrace=False)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_url(raw_url: str, field: str = "url") -> None:
    """Check that raw_url is an absolute http(s) URL with a host.

    Raises:
        ValidationError: when the URL is empty, too long, relative or uses another scheme.
    """
    if not raw_url:
        raise ValidationError(field, "URL is required")
    if len(raw_url) > MAX_URL_LENGTH:
        raise ValidationError(field, f"URL must not exceed {MAX_URL_LENGTH} characters")

    try:
        parsed = urlparse(raw_url)
    except ValueError as exc:
        raise ValidationError(field, "URL is malformed") from exc

    if parsed.scheme not in ("http", "https"):
        raise ValidationError(field, "URL must use http or https scheme")
    if not parsed.hostname:
        raise ValidationError(field, "URL must have a valid host")
