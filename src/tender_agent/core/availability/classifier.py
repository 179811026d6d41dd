"""Failure classification for availability probes.

Pure functions that turn an HTTP response (status + Retry-After header) or a
transport exception into a :class:`ClassifiedFailure`.

Classification is signal-driven rather than status-code driven:
    1. 401 / 403 -> ``invalid-credential`` (always wins, even with a hint)
    2. Any status carrying a usable Retry-After hint -> ``rate-limited``
       (429 user limits and 529/503 overload signals alike)
    3. Everything else -> ``service-down`` (exponential backoff)

Timeouts and transport errors are always ``service-down``: there is no
server hint to honor in that case.
"""

import math
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

from tender_agent.core.availability.models import ClassifiedFailure, FailureCategory
from tender_agent.core.observability import redact_secrets

_CREDENTIAL_STATUSES = frozenset({401, 403})
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")

TIMEOUT_MESSAGE = "Request timed out"


def _parse_http_date(value: str) -> Optional[datetime]:
    """Parse an RFC 7231 HTTP-date, falling back to ISO 8601."""
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_retry_after(
    value: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> Optional[int]:
    """Parse a ``Retry-After`` header value into milliseconds.

    Supports both delay-seconds and HTTP-date forms. ``"0"`` is valid and
    means "retry immediately".

    Args:
        value: Raw header value (``None`` when the header is missing).
        now: Reference time for HTTP-date values (default: current UTC time).

    Returns:
        Delay in milliseconds, or ``None`` if the header is missing, negative,
        already in the past, or unparseable.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    if _INTEGER_PATTERN.match(text):
        seconds = int(text)
        if seconds < 0:
            return None
        return seconds * 1000

    target = _parse_http_date(text)
    if target is None:
        return None

    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    delay_ms = int((target - reference).total_seconds() * 1000)
    return delay_ms if delay_ms > 0 else None


def classify_response(status: int, has_retry_after: bool) -> FailureCategory:
    """Classify a non-success HTTP status into a failure category.

    Args:
        status: HTTP status code of the response.
        has_retry_after: Whether the response carried a usable delay hint.

    Returns:
        The failure category that selects the recovery strategy.
    """
    if status in _CREDENTIAL_STATUSES:
        return FailureCategory.INVALID_CREDENTIAL
    if has_retry_after:
        return FailureCategory.RATE_LIMITED
    # 5xx, 429/529 without Retry-After, and anything else unexpected
    return FailureCategory.SERVICE_DOWN


def failure_from_response(
    status: int,
    reason_phrase: str = "",
    retry_after: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> ClassifiedFailure:
    """Build a :class:`ClassifiedFailure` from an HTTP response's parts."""
    retry_after_ms = parse_retry_after(retry_after, now=now)
    category = classify_response(status, retry_after_ms is not None)
    status_text = f"{status} {reason_phrase}".strip()

    if category == FailureCategory.INVALID_CREDENTIAL:
        message = f"API key is invalid or unauthorized ({status_text})"
    elif category == FailureCategory.RATE_LIMITED:
        seconds = math.ceil((retry_after_ms or 0) / 1000)
        message = f"Rate limited. Retry after {seconds} seconds"
    else:
        message = f"Service unavailable ({status_text})"

    return ClassifiedFailure(
        category=category,
        message=message,
        http_status=status,
        retry_after_ms=retry_after_ms,
    )


def timeout_failure() -> ClassifiedFailure:
    """Failure used for probe timeouts and cancellations."""
    return ClassifiedFailure(
        category=FailureCategory.SERVICE_DOWN,
        message=TIMEOUT_MESSAGE,
    )


def failure_from_exception(error: BaseException) -> ClassifiedFailure:
    """Build a service-down failure from a transport-level exception.

    Timeouts (checked by class name, so httpx and asyncio timeouts both
    match) get the timeout message; everything else is a network error.
    """
    error_type_name = type(error).__name__.lower()
    if "timeout" in error_type_name or "cancelled" in error_type_name:
        return timeout_failure()

    detail = str(error) or type(error).__name__
    return ClassifiedFailure(
        category=FailureCategory.SERVICE_DOWN,
        message=f"Network error: {redact_secrets(detail)}",
    )
