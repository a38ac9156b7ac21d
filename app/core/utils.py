"""
Core Utilities

Shared helpers used across the application.
"""
import logging
import re
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

DEFAULT_DURATION_SECONDS = 300  # 5 minutes

_DURATION_UNITS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
}

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd])\s*$", re.IGNORECASE)


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def parse_duration(value: str, default: int = DEFAULT_DURATION_SECONDS) -> int:
    """
    Parse a duration string such as "30s", "5m", "1h" or "1d" into seconds.

    Malformed or non-positive values fall back to `default`.
    """
    match = _DURATION_PATTERN.match(value or "")
    if not match:
        logger.warning(f"Invalid duration {value!r}, using default of {default}s")
        return default

    amount = int(match.group(1))
    if amount <= 0:
        logger.warning(f"Non-positive duration {value!r}, using default of {default}s")
        return default

    return amount * _DURATION_UNITS[match.group(2).lower()]
