"""Pure state machine for LLM availability.

Handles the different failure modes with their own recovery strategies:
- invalid-credential: no automatic retry (the user must fix the key)
- rate-limited: one automatic retry after the Retry-After delay
- service-down: automatic retries with exponential backoff, bounded by
  ``max_retries``

The machine is a pure function ``transition(machine, event) -> Transition``.
It never performs I/O; instead it returns effects (start/cancel a probe,
schedule/cancel a timer) for a driver such as
:class:`~tender_agent.core.availability.monitor.AvailabilityMonitor` to run.

Every entry into ``checking``, ``rateLimited`` or ``serviceDown`` takes a new
``generation``. Probe results and timer wake-ups carry the generation they
were issued for and are ignored once the machine has moved on, so a stale
probe or timer can never act on a newer configuration.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from tender_agent.core.availability.models import (
    AvailabilitySettings,
    AvailabilitySnapshot,
    AvailabilityState,
    ClassifiedFailure,
    FailureCategory,
    Provider,
    RetryContext,
)

# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class Check:
    """Host command: probe now (ignored while already checking)."""


@dataclass(frozen=True)
class Reconfigure:
    """Host command: replace provider/credential and re-evaluate from scratch."""

    provider: Provider
    credential: Optional[str] = None

    def __repr__(self) -> str:
        return f"Reconfigure(provider={self.provider.value!r}, has_credential={self.credential is not None})"


@dataclass(frozen=True)
class ProbeSucceeded:
    generation: int


@dataclass(frozen=True)
class ProbeFailed:
    generation: int
    failure: ClassifiedFailure


@dataclass(frozen=True)
class TimerElapsed:
    generation: int


Event = Union[Check, Reconfigure, ProbeSucceeded, ProbeFailed, TimerElapsed]


# =============================================================================
# Effects
# =============================================================================


@dataclass(frozen=True)
class StartProbe:
    generation: int
    credential: str

    def __repr__(self) -> str:
        return f"StartProbe(generation={self.generation})"


@dataclass(frozen=True)
class CancelProbe:
    generation: int


@dataclass(frozen=True)
class ScheduleTimer:
    generation: int
    delay_ms: int


@dataclass(frozen=True)
class CancelTimer:
    generation: int


Effect = Union[StartProbe, CancelProbe, ScheduleTimer, CancelTimer]


# =============================================================================
# Machine state
# =============================================================================

_TIMED_STATES = frozenset({AvailabilityState.RATE_LIMITED, AvailabilityState.SERVICE_DOWN})
_CHECKABLE_STATES = frozenset(
    {
        AvailabilityState.AVAILABLE,
        AvailabilityState.INVALID_CREDENTIAL,
        AvailabilityState.RATE_LIMITED,
        AvailabilityState.SERVICE_DOWN,
    }
)


@dataclass(frozen=True)
class MachineState:
    """Complete machine value: state tag, retry context, settings, generation."""

    state: AvailabilityState
    context: RetryContext
    settings: AvailabilitySettings
    generation: int = 0

    def snapshot(self) -> AvailabilitySnapshot:
        return AvailabilitySnapshot(
            state=self.state,
            context=self.context,
            settings=self.settings,
        )


@dataclass(frozen=True)
class Transition:
    """Result of applying one event.

    Attributes:
        machine: The machine value after the event
        effects: Work the driver must perform, in order
        handled: False when the event was ignored (no-op or stale)
    """

    machine: MachineState
    effects: Tuple[Effect, ...] = ()
    handled: bool = True


def backoff_delay_ms(context: RetryContext, settings: AvailabilitySettings) -> int:
    """Delay before the next automatic retry from ``serviceDown``."""
    return min(context.current_backoff_ms, settings.max_backoff_ms)


def rate_limit_delay_ms(context: RetryContext, settings: AvailabilitySettings) -> int:
    """Delay before the automatic re-check from ``rateLimited``.

    Uses the latest hint if present (``0`` means immediately), otherwise the
    configured default. Never doubled.
    """
    if context.retry_after_ms is not None:
        return context.retry_after_ms
    return settings.rate_limit_default_ms


def can_retry(context: RetryContext, settings: AvailabilitySettings) -> bool:
    return context.retry_count < settings.max_retries


# =============================================================================
# Entry / exit actions
# =============================================================================


def _exit(machine: MachineState) -> Tuple[Effect, ...]:
    if machine.state == AvailabilityState.CHECKING:
        return (CancelProbe(machine.generation),)
    if machine.state in _TIMED_STATES:
        return (CancelTimer(machine.generation),)
    return ()


def _enter(machine: MachineState, target: AvailabilityState) -> Transition:
    """Enter *target*, running its entry action and routing transient states."""
    if target == AvailabilityState.INITIALIZING:
        settings = machine.settings
        if settings.provider == Provider.DISABLED:
            routed = AvailabilityState.DISABLED
        elif not settings.has_credential:
            routed = AvailabilityState.CREDENTIAL_MISSING
        else:
            routed = AvailabilityState.CHECKING
        return _enter(replace(machine, state=AvailabilityState.INITIALIZING), routed)

    if target == AvailabilityState.CHECKING:
        generation = machine.generation + 1
        entered = replace(machine, state=target, generation=generation)
        # Routing guarantees a credential before checking is entered
        credential = machine.settings.credential or ""
        return Transition(entered, (StartProbe(generation, credential),))

    if target == AvailabilityState.RATE_LIMITED:
        generation = machine.generation + 1
        entered = replace(machine, state=target, generation=generation)
        delay = rate_limit_delay_ms(machine.context, machine.settings)
        return Transition(entered, (ScheduleTimer(generation, delay),))

    if target == AvailabilityState.SERVICE_DOWN:
        generation = machine.generation + 1
        entered = replace(machine, state=target, generation=generation)
        if not can_retry(machine.context, machine.settings):
            # Exhausted: stays here until a manual check or reconfiguration
            return Transition(entered)
        delay = backoff_delay_ms(machine.context, machine.settings)
        return Transition(entered, (ScheduleTimer(generation, delay),))

    return Transition(replace(machine, state=target))


def _go(
    machine: MachineState,
    target: AvailabilityState,
    context: Optional[RetryContext] = None,
    settings: Optional[AvailabilitySettings] = None,
) -> Transition:
    """Exit the current state, update context/settings, enter *target*."""
    exit_effects = _exit(machine)
    updated = replace(
        machine,
        context=context if context is not None else machine.context,
        settings=settings if settings is not None else machine.settings,
    )
    entered = _enter(updated, target)
    return Transition(entered.machine, exit_effects + entered.effects)


def _ignore(machine: MachineState) -> Transition:
    return Transition(machine, handled=False)


# =============================================================================
# Public API
# =============================================================================


def initial_transition(settings: AvailabilitySettings) -> Transition:
    """Create the machine and resolve the ``initializing`` pseudostate."""
    machine = MachineState(
        state=AvailabilityState.INITIALIZING,
        context=RetryContext.initial(settings),
        settings=settings,
    )
    return _enter(machine, AvailabilityState.INITIALIZING)


def _on_probe_failed(machine: MachineState, failure: ClassifiedFailure) -> Transition:
    context = machine.context.with_error(failure)

    if failure.category == FailureCategory.INVALID_CREDENTIAL:
        return _go(machine, AvailabilityState.INVALID_CREDENTIAL, context=context)

    if failure.category == FailureCategory.RATE_LIMITED:
        # Latest hint only; a hint-less response falls back to the default
        context = replace(context, retry_after_ms=failure.retry_after_ms)
        return _go(machine, AvailabilityState.RATE_LIMITED, context=context)

    context = replace(context, retry_count=context.retry_count + 1)
    return _go(machine, AvailabilityState.SERVICE_DOWN, context=context)


def _on_timer(machine: MachineState) -> Transition:
    if machine.state == AvailabilityState.RATE_LIMITED:
        return _go(machine, AvailabilityState.CHECKING)

    if machine.state == AvailabilityState.SERVICE_DOWN:
        if not can_retry(machine.context, machine.settings):
            return _ignore(machine)
        context = replace(
            machine.context,
            current_backoff_ms=min(
                machine.context.current_backoff_ms * 2,
                machine.settings.max_backoff_ms,
            ),
        )
        return _go(machine, AvailabilityState.CHECKING, context=context)

    return _ignore(machine)


def transition(machine: MachineState, event: Event) -> Transition:
    """Apply *event* to *machine*.

    Args:
        machine: Current machine value.
        event: Host command, probe result, or timer wake-up.

    Returns:
        Transition with the new machine value and the effects to perform.
        Events that do not apply to the current state, or that belong to a
        previous generation, come back with ``handled=False`` and no effects.
    """
    state = machine.state

    if isinstance(event, Reconfigure):
        settings = machine.settings.with_provider(event.provider, event.credential)
        return _go(
            machine,
            AvailabilityState.INITIALIZING,
            context=RetryContext.initial(settings),
            settings=settings,
        )

    if isinstance(event, Check):
        if state not in _CHECKABLE_STATES:
            return _ignore(machine)
        if state == AvailabilityState.SERVICE_DOWN:
            return _go(
                machine,
                AvailabilityState.CHECKING,
                context=machine.context.reset(machine.settings),
            )
        return _go(machine, AvailabilityState.CHECKING)

    if isinstance(event, (ProbeSucceeded, ProbeFailed)):
        if state != AvailabilityState.CHECKING or event.generation != machine.generation:
            return _ignore(machine)
        if isinstance(event, ProbeSucceeded):
            return _go(
                machine,
                AvailabilityState.AVAILABLE,
                context=machine.context.reset(machine.settings),
            )
        return _on_probe_failed(machine, event.failure)

    if isinstance(event, TimerElapsed):
        if state not in _TIMED_STATES or event.generation != machine.generation:
            return _ignore(machine)
        return _on_timer(machine)

    raise TypeError(f"Unknown availability event: {event!r}")
