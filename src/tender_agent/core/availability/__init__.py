"""LLM availability monitoring.

Tracks whether the Anthropic API is usable and recovers automatically from
transient failures:

- ``models``: settings, retry context, states and snapshots
- ``classifier``: maps HTTP responses and transport errors to failure categories
- ``prober``: one lightweight authenticated request per check
- ``machine``: pure transition function returning effects
- ``scheduler``: asyncio-backed and virtual-clock timers
- ``monitor``: asyncio driver that owns the machine and performs its effects
- ``display``: status-bar text for each state

Usage:
    from tender_agent.core.availability import (
        AnthropicProber,
        AvailabilityMonitor,
        AvailabilitySettings,
    )

    monitor = AvailabilityMonitor(AvailabilitySettings(credential=key), AnthropicProber())
    monitor.start()
    snapshot = await monitor.wait_until_settled()
"""

from tender_agent.core.availability.classifier import (
    classify_response,
    failure_from_exception,
    failure_from_response,
    parse_retry_after,
    timeout_failure,
)
from tender_agent.core.availability.display import (
    StatusDisplay,
    requires_user_action,
    status_display,
)
from tender_agent.core.availability.machine import (
    CancelProbe,
    CancelTimer,
    Check,
    MachineState,
    ProbeFailed,
    ProbeSucceeded,
    Reconfigure,
    ScheduleTimer,
    StartProbe,
    TimerElapsed,
    Transition,
    initial_transition,
    transition,
)
from tender_agent.core.availability.models import (
    DEFAULT_BASE_BACKOFF_MS,
    DEFAULT_MAX_BACKOFF_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_LIMIT_MS,
    AvailabilitySettings,
    AvailabilitySnapshot,
    AvailabilityState,
    ClassifiedFailure,
    FailureCategory,
    Provider,
    RetryContext,
)
from tender_agent.core.availability.monitor import AvailabilityMonitor
from tender_agent.core.availability.prober import AnthropicProber, probe_availability
from tender_agent.core.availability.scheduler import (
    AsyncioScheduler,
    ManualScheduler,
    Scheduler,
)

__all__ = [
    # Models
    "DEFAULT_BASE_BACKOFF_MS",
    "DEFAULT_MAX_BACKOFF_MS",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RATE_LIMIT_MS",
    "AvailabilitySettings",
    "AvailabilitySnapshot",
    "AvailabilityState",
    "ClassifiedFailure",
    "FailureCategory",
    "Provider",
    "RetryContext",
    # Classification
    "classify_response",
    "failure_from_exception",
    "failure_from_response",
    "parse_retry_after",
    "timeout_failure",
    # Probing
    "AnthropicProber",
    "probe_availability",
    # Machine
    "CancelProbe",
    "CancelTimer",
    "Check",
    "MachineState",
    "ProbeFailed",
    "ProbeSucceeded",
    "Reconfigure",
    "ScheduleTimer",
    "StartProbe",
    "TimerElapsed",
    "Transition",
    "initial_transition",
    "transition",
    # Driving
    "AsyncioScheduler",
    "AvailabilityMonitor",
    "ManualScheduler",
    "Scheduler",
    # Display
    "StatusDisplay",
    "requires_user_action",
    "status_display",
]
