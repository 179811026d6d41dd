"""Availability prober for the Anthropic API.

Makes exactly one lightweight authenticated request (``GET /v1/models``)
to verify that:
    1. The API key is valid
    2. The service is reachable

There are no retries here; all retry policy lives in the availability
machine. Failures are raised as :class:`AvailabilityError` carrying a
:class:`ClassifiedFailure`.

Example usage:
    await probe_availability("sk-ant-...", timeout_ms=5000)

    prober = AnthropicProber(base_url="https://api.anthropic.com")
    await prober("sk-ant-...", cancel_event)
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

import httpx

from tender_agent.core.availability.classifier import (
    failure_from_exception,
    failure_from_response,
    timeout_failure,
)
from tender_agent.core.errors.availability import AvailabilityError
from tender_agent.core.observability import redact_secrets

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Anthropic API constants
DEFAULT_BASE_URL = "https://api.anthropic.com"
MODELS_ENDPOINT = "/v1/models"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_TIMEOUT_MS = 10_000


async def _await_unless_cancelled(
    awaitable: Awaitable[T],
    cancel_event: asyncio.Event,
) -> T:
    """Await *awaitable*, abandoning it as soon as *cancel_event* is set.

    Raises:
        AvailabilityError: With the timeout failure if the event wins the race.
    """
    if cancel_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise AvailabilityError(timeout_failure())

    request_task = asyncio.ensure_future(awaitable)
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait(
            {request_task, cancel_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        for task in (request_task, cancel_task):
            if not task.done():
                task.cancel()

    if cancel_task in done:
        if request_task.done() and not request_task.cancelled():
            # Retrieve so a late failure is not reported as unhandled
            request_task.exception()
        raise AvailabilityError(timeout_failure())
    return request_task.result()


async def _send(
    http: httpx.AsyncClient,
    url: str,
    headers: dict[str, str],
    cancel_event: Optional[asyncio.Event],
    timeout_ms: int,
) -> httpx.Response:
    request = http.get(url, headers=headers)
    if cancel_event is not None:
        return await _await_unless_cancelled(request, cancel_event)
    return await asyncio.wait_for(request, timeout=timeout_ms / 1000)


async def probe_availability(
    credential: str,
    *,
    cancel_event: Optional[asyncio.Event] = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    base_url: str = DEFAULT_BASE_URL,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    """Check whether the Anthropic API is reachable with *credential*.

    Args:
        credential: API key to validate. Never logged.
        cancel_event: External cancellation signal. When provided the caller
            owns cancellation and *timeout_ms* is ignored.
        timeout_ms: Request timeout in milliseconds (default: 10000).
        base_url: API base URL (default: https://api.anthropic.com).
        client: Optional shared client. Injected clients keep their own
            timeout settings and are left open.

    Raises:
        AvailabilityError: If the check fails, classified as
            ``invalid-credential``, ``rate-limited`` or ``service-down``.
    """
    url = f"{base_url.rstrip('/')}{MODELS_ENDPOINT}"
    headers = {
        "x-api-key": credential,
        "anthropic-version": ANTHROPIC_VERSION,
    }
    # With a cancel event the caller decides when to give up
    timeout = None if cancel_event is not None else httpx.Timeout(timeout_ms / 1000)

    try:
        if client is not None:
            response = await _send(client, url, headers, cancel_event, timeout_ms)
        else:
            async with httpx.AsyncClient(timeout=timeout) as http:
                response = await _send(http, url, headers, cancel_event, timeout_ms)
    except AvailabilityError:
        raise
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        logger.debug("Availability probe timed out after %sms", timeout_ms)
        raise AvailabilityError(timeout_failure()) from e
    except httpx.HTTPError as e:
        logger.debug("Availability probe transport error: %s", redact_secrets(str(e)))
        raise AvailabilityError(failure_from_exception(e)) from e

    if not response.is_success:
        raise AvailabilityError(
            failure_from_response(
                response.status_code,
                response.reason_phrase,
                response.headers.get("retry-after"),
            )
        )


class AnthropicProber:
    """Probe callable bound to an endpoint, timeout and optional client.

    Matches the monitor's ``ProbeFunc`` signature so it can be handed
    straight to :class:`AvailabilityMonitor`.

    Attributes:
        base_url: API base URL
        timeout_ms: Timeout used when no cancellation signal is supplied
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url
        self.timeout_ms = timeout_ms
        self._client = client

    async def __call__(
        self,
        credential: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        await probe_availability(
            credential,
            cancel_event=cancel_event,
            timeout_ms=self.timeout_ms,
            base_url=self.base_url,
            client=self._client,
        )

    def __repr__(self) -> str:
        return f"AnthropicProber(base_url={self.base_url!r}, timeout_ms={self.timeout_ms})"
