"""Tests for the pure availability state machine.

Verifies:
- Initial routing (disabled, credentialMissing, checking)
- Probe outcomes per failure category
- Exponential backoff arithmetic and the retry cap
- Manual checks and reconfiguration from every state
- Stale probe results and timers are ignored
- Effects: probes and timers are cancelled on exit
"""

from dataclasses import replace

import pytest

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
    backoff_delay_ms,
    initial_transition,
    rate_limit_delay_ms,
    transition,
)
from tender_agent.core.availability.models import (
    AvailabilitySettings,
    AvailabilityState,
    ClassifiedFailure,
    FailureCategory,
    Provider,
)

KEY = "sk-ant-test-key"

SERVICE_DOWN = ClassifiedFailure(
    category=FailureCategory.SERVICE_DOWN,
    message="Service unavailable (503 Service Unavailable)",
    http_status=503,
)
INVALID_KEY = ClassifiedFailure(
    category=FailureCategory.INVALID_CREDENTIAL,
    message="API key is invalid or unauthorized (401 Unauthorized)",
    http_status=401,
)


def rate_limited(retry_after_ms=None) -> ClassifiedFailure:
    return ClassifiedFailure(
        category=FailureCategory.RATE_LIMITED,
        message="Rate limited",
        http_status=429,
        retry_after_ms=retry_after_ms,
    )


def make_settings(**overrides) -> AvailabilitySettings:
    data = {"provider": "enabled", "credential": KEY}
    data.update(overrides)
    return AvailabilitySettings(**data)


def start(**overrides) -> MachineState:
    return initial_transition(make_settings(**overrides)).machine


def fail(machine: MachineState, failure: ClassifiedFailure) -> Transition:
    return transition(machine, ProbeFailed(machine.generation, failure))


def succeed(machine: MachineState) -> Transition:
    return transition(machine, ProbeSucceeded(machine.generation))


def elapse(machine: MachineState) -> Transition:
    return transition(machine, TimerElapsed(machine.generation))


def scheduled_delays(effects) -> list:
    return [effect.delay_ms for effect in effects if isinstance(effect, ScheduleTimer)]


class TestInitialRouting:
    """Tests for the initializing pseudostate."""

    def test_disabled_provider(self):
        result = initial_transition(make_settings(provider="disabled"))
        assert result.machine.state == AvailabilityState.DISABLED
        assert result.effects == ()

    def test_disabled_wins_over_missing_credential(self):
        result = initial_transition(make_settings(provider="disabled", credential=None))
        assert result.machine.state == AvailabilityState.DISABLED

    def test_missing_credential_never_probes(self):
        """Enabled without a key settles in credentialMissing with no probe."""
        result = initial_transition(make_settings(credential=None))
        assert result.machine.state == AvailabilityState.CREDENTIAL_MISSING
        assert not any(isinstance(e, StartProbe) for e in result.effects)

    def test_blank_credential_counts_as_missing(self):
        result = initial_transition(make_settings(credential="   "))
        assert result.machine.state == AvailabilityState.CREDENTIAL_MISSING

    def test_credential_starts_probe(self):
        result = initial_transition(make_settings())
        assert result.machine.state == AvailabilityState.CHECKING
        assert result.effects == (StartProbe(result.machine.generation, KEY),)

    def test_initial_context(self):
        machine = start(base_backoff_ms=2000)
        assert machine.context.retry_count == 0
        assert machine.context.current_backoff_ms == 2000
        assert machine.context.last_error_message is None


class TestProbeOutcomes:
    """Tests for transitions out of checking."""

    def test_success_goes_available(self):
        result = succeed(start())
        assert result.machine.state == AvailabilityState.AVAILABLE
        assert result.effects == (CancelProbe(1),)

    def test_invalid_credential_records_error(self):
        result = fail(start(), INVALID_KEY)
        machine = result.machine
        assert machine.state == AvailabilityState.INVALID_CREDENTIAL
        assert machine.context.last_error_code == 401
        assert machine.context.last_error_message == INVALID_KEY.message
        assert scheduled_delays(result.effects) == []

    def test_rate_limited_uses_hint(self):
        result = fail(start(), rate_limited(500))
        assert result.machine.state == AvailabilityState.RATE_LIMITED
        assert result.machine.context.retry_after_ms == 500
        assert scheduled_delays(result.effects) == [500]

    def test_rate_limited_zero_hint_retries_immediately(self):
        result = fail(start(), rate_limited(0))
        assert scheduled_delays(result.effects) == [0]

    def test_rate_limited_without_hint_uses_default(self):
        result = fail(start(rate_limit_default_ms=45_000), rate_limited())
        assert scheduled_delays(result.effects) == [45_000]

    def test_rate_limit_delay_not_doubled(self):
        """Repeated rate limits reuse the latest hint, never accumulate."""
        machine = fail(start(), rate_limited(1000)).machine
        machine = elapse(machine).machine
        assert machine.state == AvailabilityState.CHECKING
        result = fail(machine, rate_limited())
        assert scheduled_delays(result.effects) == [60_000]
        assert result.machine.context.retry_count == 0

    def test_service_down_increments_retry_count(self):
        result = fail(start(), SERVICE_DOWN)
        assert result.machine.state == AvailabilityState.SERVICE_DOWN
        assert result.machine.context.retry_count == 1
        assert scheduled_delays(result.effects) == [10_000]

    def test_success_resets_context(self):
        machine = fail(start(base_backoff_ms=1000), SERVICE_DOWN).machine
        machine = elapse(machine).machine
        machine = succeed(machine).machine
        assert machine.state == AvailabilityState.AVAILABLE
        assert machine.context.retry_count == 0
        assert machine.context.current_backoff_ms == 1000
        assert machine.context.last_error_message is None


class TestBackoff:
    """Tests for exponential backoff and the retry cap."""

    def test_backoff_sequence_capped(self):
        """Four failures with base=100/max=300 record 100, 200, 300, 300."""
        machine = start(base_backoff_ms=100, max_backoff_ms=300)
        recorded = []
        delays = []
        for _ in range(4):
            result = fail(machine, SERVICE_DOWN)
            recorded.append(result.machine.context.current_backoff_ms)
            delays.extend(scheduled_delays(result.effects))
            machine = elapse(result.machine).machine

        assert recorded == [100, 200, 300, 300]
        assert delays == [100, 200, 300, 300]

    @pytest.mark.parametrize("base,cap", [(1000, 600_000), (1000, 5000), (3000, 3000)])
    def test_nth_delay_formula(self, base, cap):
        """The n-th delay is min(base * 2**(n-1), cap)."""
        machine = start(base_backoff_ms=base, max_backoff_ms=cap, max_retries=10)
        for n in range(1, 9):
            result = fail(machine, SERVICE_DOWN)
            assert scheduled_delays(result.effects) == [min(base * 2 ** (n - 1), cap)]
            machine = elapse(result.machine).machine

    def test_no_timer_after_max_retries(self):
        machine = start(base_backoff_ms=100, max_retries=3)
        for _ in range(2):
            machine = elapse(fail(machine, SERVICE_DOWN).machine).machine

        result = fail(machine, SERVICE_DOWN)
        assert result.machine.state == AvailabilityState.SERVICE_DOWN
        assert result.machine.context.retry_count == 3
        assert scheduled_delays(result.effects) == []

    def test_zero_max_retries_never_auto_retries(self):
        result = fail(start(max_retries=0), SERVICE_DOWN)
        assert result.machine.state == AvailabilityState.SERVICE_DOWN
        assert scheduled_delays(result.effects) == []

    def test_exhausted_state_ignores_timer(self):
        machine = fail(start(max_retries=1), SERVICE_DOWN).machine
        result = elapse(machine)
        assert result.handled is False
        assert result.machine == machine

    def test_helper_delays(self):
        machine = start(base_backoff_ms=4000, max_backoff_ms=6000)
        context = replace(machine.context, current_backoff_ms=8000)
        assert backoff_delay_ms(context, machine.settings) == 6000
        assert rate_limit_delay_ms(machine.context, machine.settings) == 60_000


class TestManualCheck:
    """Tests for the CHECK command."""

    def test_ignored_while_checking(self):
        machine = start()
        result = transition(machine, Check())
        assert result.handled is False
        assert result.effects == ()

    @pytest.mark.parametrize(
        "state_factory",
        [
            lambda: start(provider="disabled"),
            lambda: start(credential=None),
        ],
    )
    def test_ignored_without_probe_target(self, state_factory):
        result = transition(state_factory(), Check())
        assert result.handled is False

    def test_from_available(self):
        machine = succeed(start()).machine
        result = transition(machine, Check())
        assert result.machine.state == AvailabilityState.CHECKING
        assert isinstance(result.effects[-1], StartProbe)

    def test_from_invalid_credential(self):
        machine = fail(start(), INVALID_KEY).machine
        result = transition(machine, Check())
        assert result.machine.state == AvailabilityState.CHECKING

    def test_from_rate_limited_cancels_timer(self):
        machine = fail(start(), rate_limited(30_000)).machine
        result = transition(machine, Check())
        assert result.machine.state == AvailabilityState.CHECKING
        assert result.effects[0] == CancelTimer(machine.generation)
        assert isinstance(result.effects[1], StartProbe)

    def test_from_service_down_resets_context(self):
        """A manual check from serviceDown resets retries before probing."""
        machine = start(base_backoff_ms=1000, max_retries=2)
        for _ in range(2):
            machine = fail(machine, SERVICE_DOWN).machine
            if machine.context.retry_count < 2:
                machine = elapse(machine).machine
        assert machine.context.retry_count == 2
        assert machine.context.current_backoff_ms == 2000

        result = transition(machine, Check())
        assert result.machine.state == AvailabilityState.CHECKING
        assert result.machine.context.retry_count == 0
        assert result.machine.context.current_backoff_ms == 1000

    def test_automatic_retry_keeps_context(self):
        machine = fail(start(base_backoff_ms=1000), SERVICE_DOWN).machine
        result = elapse(machine)
        assert result.machine.state == AvailabilityState.CHECKING
        assert result.machine.context.retry_count == 1
        assert result.machine.context.current_backoff_ms == 2000


class TestReconfigure:
    """Tests for RECONFIGURE from every state."""

    @pytest.fixture(
        params=[
            "checking",
            "available",
            "credentialMissing",
            "invalidCredential",
            "rateLimited",
            "serviceDown",
            "disabled",
        ]
    )
    def machine_in_state(self, request) -> MachineState:
        name = request.param
        if name == "checking":
            return start()
        if name == "available":
            return succeed(start()).machine
        if name == "credentialMissing":
            return start(credential=None)
        if name == "invalidCredential":
            return fail(start(), INVALID_KEY).machine
        if name == "rateLimited":
            return fail(start(), rate_limited(500)).machine
        if name == "serviceDown":
            return fail(start(), SERVICE_DOWN).machine
        return start(provider="disabled")

    def test_disable_from_any_state(self, machine_in_state):
        """Reconfigure to disabled yields disabled at once, cancelling work."""
        result = transition(machine_in_state, Reconfigure(Provider.DISABLED))
        assert result.machine.state == AvailabilityState.DISABLED
        assert not any(isinstance(e, (StartProbe, ScheduleTimer)) for e in result.effects)

        if machine_in_state.state == AvailabilityState.CHECKING:
            assert CancelProbe(machine_in_state.generation) in result.effects
        if machine_in_state.state in (
            AvailabilityState.RATE_LIMITED,
            AvailabilityState.SERVICE_DOWN,
        ):
            assert CancelTimer(machine_in_state.generation) in result.effects

    def test_reconfigure_resets_context(self, machine_in_state):
        result = transition(machine_in_state, Reconfigure(Provider.ENABLED, "sk-ant-new-key"))
        assert result.machine.state == AvailabilityState.CHECKING
        assert result.machine.context.retry_count == 0
        assert result.machine.context.last_error_message is None
        assert result.machine.settings.credential == "sk-ant-new-key"
        assert result.effects[-1] == StartProbe(result.machine.generation, "sk-ant-new-key")

    def test_reconfigure_keeps_retry_tuning(self):
        machine = start(max_retries=2, base_backoff_ms=1500)
        result = transition(machine, Reconfigure(Provider.ENABLED, None))
        assert result.machine.state == AvailabilityState.CREDENTIAL_MISSING
        assert result.machine.settings.max_retries == 2
        assert result.machine.context.current_backoff_ms == 1500


class TestStaleEvents:
    """Tests for generation guards on probe results and timers."""

    def test_probe_result_from_previous_generation_ignored(self):
        """A probe resolving after reconfiguration does not apply."""
        first = start()
        restarted = transition(first, Reconfigure(Provider.ENABLED, "sk-ant-other")).machine
        assert restarted.state == AvailabilityState.CHECKING

        result = transition(restarted, ProbeSucceeded(first.generation))
        assert result.handled is False
        assert result.machine == restarted

    def test_probe_result_outside_checking_ignored(self):
        machine = succeed(start()).machine
        result = transition(machine, ProbeFailed(machine.generation, SERVICE_DOWN))
        assert result.handled is False

    def test_stale_timer_ignored(self):
        machine = fail(start(), rate_limited(500)).machine
        rechecked = transition(machine, Check()).machine
        rate_limited_again = fail(rechecked, rate_limited(500)).machine

        result = transition(rate_limited_again, TimerElapsed(machine.generation))
        assert result.handled is False
        assert result.machine.state == AvailabilityState.RATE_LIMITED

    def test_generation_increases_on_each_timed_or_checking_entry(self):
        machine = start()
        generations = [machine.generation]
        machine = fail(machine, SERVICE_DOWN).machine
        generations.append(machine.generation)
        machine = elapse(machine).machine
        generations.append(machine.generation)
        assert generations == sorted(set(generations))

    def test_unknown_event_rejected(self):
        with pytest.raises(TypeError):
            transition(start(), object())  # type: ignore[arg-type]
