"""Parsing and normalization helpers for configuration values."""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Minimum for millisecond tuning values read from config files
MIN_CONFIG_MS = 1000


def _try_parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return None


def _normalize_log_level(value: str) -> Optional[str]:
    """Upper-case *value* and return it if it names a logging level."""
    normalized = value.strip().upper()
    if normalized == "WARN":
        normalized = "WARNING"
    if normalized not in _VALID_LOG_LEVELS:
        return None
    return normalized


def _parse_int(value: Any, *, minimum: Optional[int] = None) -> int:
    """Parse an integer config value.

    Raises:
        ValueError: If *value* is not an integer or is below *minimum*.
    """
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        value = int(value)
    parsed = int(value)
    if minimum is not None and parsed < minimum:
        raise ValueError(f"must be >= {minimum}, got {parsed}")
    return parsed
