"""Status-bar rendering of availability states."""

import math
from dataclasses import dataclass
from typing import Optional

from tender_agent.core.availability.models import (
    AvailabilitySettings,
    AvailabilityState,
    RetryContext,
)


@dataclass(frozen=True)
class StatusDisplay:
    """Text and color for the status bar; ``show`` False hides the indicator."""

    text: str
    color: Optional[str]
    show: bool


_HIDDEN = StatusDisplay(text="", color=None, show=False)

_STATIC_DISPLAYS = {
    AvailabilityState.INITIALIZING: StatusDisplay("AI: ...", "gray", True),
    AvailabilityState.CHECKING: StatusDisplay("AI: ...", "gray", True),
    AvailabilityState.AVAILABLE: StatusDisplay("AI: Online", "green", True),
    AvailabilityState.CREDENTIAL_MISSING: StatusDisplay("AI: Key needed", "yellow", True),
    AvailabilityState.INVALID_CREDENTIAL: StatusDisplay("AI: Invalid key", "red", True),
    AvailabilityState.SERVICE_DOWN: StatusDisplay("AI: Offline", "red", True),
}


def status_display(
    state: AvailabilityState,
    retry_after_ms: Optional[int] = None,
) -> StatusDisplay:
    """Map *state* to its status-bar indicator.

    Rate-limited states show the hint rounded up to whole seconds, or ``?``
    when no (or a zero) hint is known.
    """
    if state == AvailabilityState.RATE_LIMITED:
        seconds = str(math.ceil(retry_after_ms / 1000)) if retry_after_ms else "?"
        return StatusDisplay(f"AI: Limited ({seconds}s)", "yellow", True)
    return _STATIC_DISPLAYS.get(state, _HIDDEN)


def requires_user_action(
    state: AvailabilityState,
    context: RetryContext,
    settings: AvailabilitySettings,
) -> bool:
    """True when nothing will change without the user (new key or manual check)."""
    if state in (AvailabilityState.CREDENTIAL_MISSING, AvailabilityState.INVALID_CREDENTIAL):
        return True
    return state == AvailabilityState.SERVICE_DOWN and context.retry_count >= settings.max_retries
