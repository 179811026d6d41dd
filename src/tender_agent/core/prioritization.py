"""Task ordering strategies for degraded mode.

When the LLM cannot rank tasks, one of these deterministic strategies is
used instead. Timestamps are ISO-8601 strings and compare lexically.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence, TypeVar

from tender_agent.core.availability.models import AvailabilitySnapshot, AvailabilityState

logger = logging.getLogger(__name__)


class TaskLike(Protocol):
    """Minimal task shape needed for ranking."""

    @property
    def due_at(self) -> Optional[str]: ...

    @property
    def created_at(self) -> str: ...


T = TypeVar("T", bound=TaskLike)


@dataclass(frozen=True)
class PrioritizationStrategy:
    """Named ranking function. ``rank`` returns a new list."""

    name: str
    _rank: Callable[[Sequence[TaskLike]], List[TaskLike]]

    def rank(self, tasks: Sequence[T]) -> List[T]:
        return self._rank(tasks)  # type: ignore[return-value]


def _rank_due_date_age(tasks: Sequence[TaskLike]) -> List[TaskLike]:
    # Dated tasks first by due date, then undated tasks oldest first
    return sorted(
        tasks,
        key=lambda t: (0, t.due_at, "") if t.due_at else (1, "", t.created_at),
    )


def _rank_age_only(tasks: Sequence[TaskLike]) -> List[TaskLike]:
    return sorted(tasks, key=lambda t: t.created_at)


def _rank_due_date_only(tasks: Sequence[TaskLike]) -> List[TaskLike]:
    # Stable sort keeps undated tasks in their original order
    return sorted(tasks, key=lambda t: (0, t.due_at) if t.due_at else (1, ""))


DUE_DATE_AGE = PrioritizationStrategy("due-date-age", _rank_due_date_age)
AGE_ONLY = PrioritizationStrategy("age-only", _rank_age_only)
DUE_DATE_ONLY = PrioritizationStrategy("due-date-only", _rank_due_date_only)

DEFAULT_STRATEGY = DUE_DATE_AGE

STRATEGIES: Dict[str, PrioritizationStrategy] = {
    strategy.name: strategy for strategy in (DUE_DATE_AGE, AGE_ONLY, DUE_DATE_ONLY)
}


def get_strategy(name: str) -> PrioritizationStrategy:
    """Look up a strategy by name, falling back to the default."""
    strategy = STRATEGIES.get(name)
    if strategy is None:
        logger.debug("Unknown prioritization strategy %r, using %s", name, DEFAULT_STRATEGY.name)
        return DEFAULT_STRATEGY
    return strategy


def choose_strategy(
    snapshot: AvailabilitySnapshot,
    llm_strategy: Optional[PrioritizationStrategy] = None,
) -> PrioritizationStrategy:
    """Pick the LLM-backed strategy only while the LLM is available."""
    if llm_strategy is not None and snapshot.state == AvailabilityState.AVAILABLE:
        return llm_strategy
    return DEFAULT_STRATEGY
