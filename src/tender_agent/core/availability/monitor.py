"""AvailabilityMonitor: runs the availability machine on the asyncio loop.

The monitor is the single owner of the machine value. It applies events one
at a time, performs the effects the machine returns (probe tasks and
timers), and notifies subscribers with read-only snapshots.

Probes run as asyncio tasks. Each probe receives an ``asyncio.Event`` whose
lifetime is scoped to one visit of ``checking``; leaving ``checking`` sets the
event and cancels the task. Timers go through an injectable
:class:`~tender_agent.core.availability.scheduler.Scheduler` so tests can use
a virtual clock.

Example:
    monitor = AvailabilityMonitor(settings, AnthropicProber())
    monitor.start()
    snapshot = await monitor.wait_until_settled()
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, List, Optional

from tender_agent.core.availability.classifier import timeout_failure
from tender_agent.core.availability.machine import (
    CancelProbe,
    CancelTimer,
    Check,
    Effect,
    Event,
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
    AvailabilitySettings,
    AvailabilitySnapshot,
    AvailabilityState,
    ClassifiedFailure,
    FailureCategory,
    Provider,
    RetryContext,
)
from tender_agent.core.availability.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from tender_agent.core.errors.availability import AvailabilityError
from tender_agent.core.observability import audit_log, get_audit_logger, redact_secrets

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[str, asyncio.Event], Awaitable[None]]
Listener = Callable[[AvailabilitySnapshot], None]
Unsubscribe = Callable[[], None]


class AvailabilityMonitor:
    """Drives the availability state machine for one upstream dependency.

    Not thread-safe: every method must be called from the event loop
    thread. All probe failures are converted into state transitions; nothing
    is raised to the host.

    Args:
        settings: Initial configuration.
        prober: Async callable ``(credential, cancel_event) -> None`` that
            raises :class:`AvailabilityError` on failure.
        scheduler: Timer source (default: the running asyncio loop).
        probe_timeout_ms: Upper bound on a single probe. The prober receives a
            cancellation event and ignores its own timeout, so the monitor
            enforces this one (``None`` disables it).
        name: Identifier used in logs and audit events.
    """

    def __init__(
        self,
        settings: AvailabilitySettings,
        prober: ProbeFunc,
        *,
        scheduler: Optional[Scheduler] = None,
        probe_timeout_ms: Optional[int] = None,
        name: str = "llm",
    ):
        self.name = name
        self._initial_settings = settings
        self._prober = prober
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._probe_timeout_ms = probe_timeout_ms

        self._machine: Optional[MachineState] = None
        self._listeners: List[Listener] = []
        self._pending: Deque[Event] = deque()
        self._dispatching = False
        self._closed = False

        self._probe_task: Optional[asyncio.Task] = None
        self._probe_cancel: Optional[asyncio.Event] = None
        self._probe_generation: Optional[int] = None
        self._timer: Optional[TimerHandle] = None
        self._timer_generation: Optional[int] = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._machine is not None

    @property
    def state(self) -> AvailabilityState:
        return self._require_machine().state

    @property
    def context(self) -> RetryContext:
        return self._require_machine().context

    @property
    def settings(self) -> AvailabilitySettings:
        if self._machine is None:
            return self._initial_settings
        return self._machine.settings

    @property
    def probe_in_flight(self) -> bool:
        return self._probe_task is not None and not self._probe_task.done()

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    def snapshot(self) -> AvailabilitySnapshot:
        """Current state, retry context and settings (read-only)."""
        return self._require_machine().snapshot()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register *listener* for every handled transition.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_for(
        self,
        predicate: Callable[[AvailabilitySnapshot], bool],
        timeout: Optional[float] = None,
    ) -> AvailabilitySnapshot:
        """Wait until a snapshot satisfies *predicate*.

        Raises:
            asyncio.TimeoutError: If *timeout* seconds pass first.
        """
        current = self.snapshot()
        if predicate(current):
            return current

        future: asyncio.Future[AvailabilitySnapshot] = asyncio.get_running_loop().create_future()

        def _listener(snapshot: AvailabilitySnapshot) -> None:
            if not future.done() and predicate(snapshot):
                future.set_result(snapshot)

        unsubscribe = self.subscribe(_listener)
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        finally:
            unsubscribe()

    async def wait_until_settled(self, timeout: Optional[float] = None) -> AvailabilitySnapshot:
        """Wait until no probe is in flight (the machine has left ``checking``)."""
        return await self.wait_for(
            lambda snapshot: snapshot.state != AvailabilityState.CHECKING,
            timeout=timeout,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> AvailabilitySnapshot:
        """Resolve the initial state and kick off the first probe if needed.

        Must be called from within a running event loop.
        """
        if self._machine is not None:
            raise RuntimeError(f"Availability monitor '{self.name}' already started")
        self._closed = False
        result = initial_transition(self._initial_settings)
        logger.debug(
            "Availability monitor '%s' starting (provider=%s)",
            self.name,
            self._initial_settings.provider.value,
        )
        self._apply(None, result)
        self._drain()
        return self.snapshot()

    def check(self) -> None:
        """Request an immediate probe (no-op while already checking)."""
        self._require_machine()
        self.dispatch(Check())

    def reconfigure(self, provider: Provider | str, credential: Optional[str] = None) -> None:
        """Replace provider/credential and re-evaluate from scratch.

        Cancels any pending timer or in-flight probe. The retry tuning of the
        current settings is kept.

        Raises:
            pydantic.ValidationError: If *provider* is not a known value.
        """
        validated = self.settings.with_provider(provider, credential)
        audit_log(
            "config_change",
            monitor_id=self.name,
            provider=validated.provider.value,
            has_credential=validated.has_credential,
        )
        self._require_machine()
        self.dispatch(Reconfigure(validated.provider, validated.credential))

    def dispatch(self, event: Event) -> None:
        """Queue *event* and process the queue unless already processing.

        Listeners that issue commands while being notified have their events
        applied after the current one completes.
        """
        if self._closed or self._machine is None:
            logger.debug("Ignoring %r: monitor '%s' is not running", event, self.name)
            return
        self._pending.append(event)
        self._drain()

    async def aclose(self) -> None:
        """Cancel any pending timer and in-flight probe; stop accepting events."""
        self._closed = True
        self._pending.clear()
        self._cancel_timer()
        task = self._probe_task
        self._cancel_probe()
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_machine(self) -> MachineState:
        if self._machine is None:
            raise RuntimeError(f"Availability monitor '{self.name}' has not been started")
        return self._machine

    def _drain(self) -> None:
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._pending and not self._closed:
                event = self._pending.popleft()
                previous = self._require_machine()
                result = transition(previous, event)
                if not result.handled:
                    logger.debug(
                        "Monitor '%s' ignored %r in state %s",
                        self.name,
                        event,
                        previous.state.value,
                    )
                    continue
                self._apply(previous, result)
        finally:
            self._dispatching = False

    def _apply(self, previous: Optional[MachineState], result: Transition) -> None:
        self._machine = result.machine
        for effect in result.effects:
            self._perform(effect)

        new_state = result.machine.state
        old_state = previous.state if previous is not None else AvailabilityState.INITIALIZING
        if previous is None or old_state != new_state:
            context = result.machine.context
            logger.info(
                "LLM availability '%s': %s -> %s",
                self.name,
                old_state.value,
                new_state.value,
            )
            get_audit_logger().state_change(
                old_state.value,
                new_state.value,
                monitor_id=self.name,
                retry_count=context.retry_count,
                error_code=context.last_error_code,
            )
            if (
                new_state == AvailabilityState.SERVICE_DOWN
                and context.retry_count >= result.machine.settings.max_retries
            ):
                logger.warning(
                    "LLM availability '%s': giving up after %s automatic retries; "
                    "waiting for a manual check",
                    self.name,
                    context.retry_count,
                )
                audit_log(
                    "retries_exhausted",
                    monitor_id=self.name,
                    retry_count=context.retry_count,
                )

        self._notify(result.machine.snapshot())

    def _notify(self, snapshot: AvailabilitySnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Availability listener failed for monitor '%s'", self.name)

    def _perform(self, effect: Effect) -> None:
        if isinstance(effect, StartProbe):
            self._start_probe(effect)
        elif isinstance(effect, CancelProbe):
            if effect.generation == self._probe_generation:
                self._cancel_probe()
        elif isinstance(effect, ScheduleTimer):
            self._schedule_timer(effect)
        elif isinstance(effect, CancelTimer):
            if effect.generation == self._timer_generation:
                self._cancel_timer()

    def _start_probe(self, effect: StartProbe) -> None:
        # At most one probe in flight: any leftover belongs to an old generation
        self._cancel_probe()
        cancel_event = asyncio.Event()
        self._probe_cancel = cancel_event
        self._probe_generation = effect.generation
        logger.debug("Monitor '%s' starting probe (generation %s)", self.name, effect.generation)
        audit_log("probe_started", monitor_id=self.name, generation=effect.generation)
        self._probe_task = asyncio.get_running_loop().create_task(
            self._run_probe(effect.generation, effect.credential, cancel_event),
            name=f"availability-probe-{self.name}-{effect.generation}",
        )

    def _cancel_probe(self) -> None:
        if self._probe_cancel is not None:
            self._probe_cancel.set()
        if self._probe_task is not None and not self._probe_task.done():
            self._probe_task.cancel()
        self._probe_task = None
        self._probe_cancel = None
        self._probe_generation = None

    async def _run_probe(
        self,
        generation: int,
        credential: str,
        cancel_event: asyncio.Event,
    ) -> None:
        event: Event
        try:
            if self._probe_timeout_ms is not None:
                await asyncio.wait_for(
                    self._prober(credential, cancel_event),
                    timeout=self._probe_timeout_ms / 1000,
                )
            else:
                await self._prober(credential, cancel_event)
        except asyncio.CancelledError:
            audit_log("probe_discarded", monitor_id=self.name, generation=generation)
            raise
        except AvailabilityError as e:
            event = ProbeFailed(generation, e.failure)
        except asyncio.TimeoutError:
            event = ProbeFailed(generation, timeout_failure())
        except Exception as e:
            logger.warning(
                "Monitor '%s' probe raised unexpected %s: %s",
                self.name,
                type(e).__name__,
                redact_secrets(str(e)),
            )
            event = ProbeFailed(
                generation,
                ClassifiedFailure(
                    category=FailureCategory.SERVICE_DOWN,
                    message=f"Unexpected error: {redact_secrets(str(e)) or type(e).__name__}",
                ),
            )
        else:
            event = ProbeSucceeded(generation)

        if isinstance(event, ProbeFailed):
            audit_log(
                "probe_failed",
                monitor_id=self.name,
                generation=generation,
                category=event.failure.category.value,
                status=event.failure.http_status,
            )
        else:
            audit_log("probe_succeeded", monitor_id=self.name, generation=generation)

        if generation != self._probe_generation:
            # Result of a probe from a previous configuration generation
            audit_log("probe_discarded", monitor_id=self.name, generation=generation)
            return
        self._probe_task = None
        self._probe_cancel = None
        self._probe_generation = None
        self.dispatch(event)

    def _schedule_timer(self, effect: ScheduleTimer) -> None:
        self._cancel_timer()
        generation = effect.generation

        def _fire() -> None:
            if self._timer_generation == generation:
                self._timer = None
                self._timer_generation = None
            self.dispatch(TimerElapsed(generation))

        logger.info(
            "LLM availability '%s': re-checking in %.1fs",
            self.name,
            effect.delay_ms / 1000,
        )
        audit_log(
            "retry_scheduled",
            monitor_id=self.name,
            generation=generation,
            delay_ms=effect.delay_ms,
        )
        self._timer = self._scheduler.call_later(effect.delay_ms / 1000, _fire)
        self._timer_generation = generation

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._timer_generation = None
