"""
Helper Utility Module

This module provides various helper functions used throughout the fomo application.
"""

import os
import random
import string
import time
from typing import Optional, Any
from datetime import datetime, timezone
from urllib.parse import urlparse

_ID_ALPHABET = string.ascii_lowercase + string.digits


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def random_suffix(length: int = 9) -> str:
    """Random lowercase base-36 string."""
    return ''.join(random.choice(_ID_ALPHABET) for _ in range(length))


def generate_id(prefix: str, separator: str = "-") -> str:
    """
    Generate a unique id from a prefix, the current time and a random suffix.

    Args:
        prefix: Leading label, e.g. "draft" or "post"
        separator: Joins the three parts

    Returns:
        str: e.g. "draft-1718000000000-k3j9x0a1b"
    """
    return separator.join([prefix, str(now_millis()), random_suffix()])


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to ISO-8601, passing None through."""
    if value is None:
        return None
    return value.isoformat()


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Rehydrate a serialized timestamp.

    Accepts ISO-8601 strings (including a trailing "Z"), epoch milliseconds
    and datetime objects.

    Args:
        value: The serialized value

    Returns:
        datetime or None if value is empty

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    raise ValueError(f"Cannot parse timestamp from {value!r}")


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is valid.

    Args:
        url: The URL to validate

    Returns:
        bool: True if the URL is valid, False otherwise
    """
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except Exception:
        return False


def truncate_text(text: str, max_length: int = 100, add_ellipsis: bool = True) -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: The text to truncate
        max_length: Maximum length
        add_ellipsis: Whether to add an ellipsis if text is truncated

    Returns:
        str: Truncated text
    """
    if not text or len(text) <= max_length:
        return text

    truncated = text[:max_length].rstrip()
    if add_ellipsis:
        truncated += "..."

    return truncated


def ensure_dir_exists(directory: str) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        directory: The directory path to check/create
    """
    if not os.path.exists(directory):
        os.makedirs(directory)
