"""Database utility functions shared across backends."""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Random record id (32 hex characters)."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_timezone_aware_iso(dt: datetime) -> str:
    """
    Convert datetime to ISO string, ensuring UTC timezone if none exists.

    Example:
        >>> ensure_timezone_aware_iso(datetime(2024, 1, 15, 10, 30))
        '2024-01-15T10:30:00+00:00'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.isoformat()


def parse_iso(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` suffix accepted) into an aware datetime."""
    if value is None or isinstance(value, datetime):
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def sanitize_json_data(data: Any, *, log_source: str = "") -> Any:
    """
    Recursively sanitize data to ensure valid UTF-8 and JSON encoding.

    Removes Unicode surrogate characters that break JSON encoding. Inbound
    activities come from untrusted servers, so they pass through here before
    they are stored.

    Args:
        data: Data to sanitize (dict, list, str, or primitive)
        log_source: Optional source identifier for logging (e.g. a remote actor URL)

    Returns:
        Sanitized copy of data safe for JSON encoding
    """
    if isinstance(data, str):
        try:
            data.encode("utf-8", errors="strict")
            return data
        except UnicodeEncodeError:
            sanitized = data.encode("utf-8", errors="replace").decode(
                "utf-8", errors="replace"
            )
            if log_source:
                logger.warning(f"Sanitized invalid Unicode in string from {log_source}")
            return sanitized

    elif isinstance(data, dict):
        return {
            sanitize_json_data(key, log_source=log_source): sanitize_json_data(
                value, log_source=log_source
            )
            for key, value in data.items()
        }

    elif isinstance(data, list):
        return [sanitize_json_data(item, log_source=log_source) for item in data]

    elif isinstance(data, tuple):
        return tuple(sanitize_json_data(item, log_source=log_source) for item in data)

    else:
        return data
