"""Timer scheduling for the availability monitor.

The monitor never sleeps itself; it asks a :class:`Scheduler` to call it
back later. Two implementations are provided:

- :class:`AsyncioScheduler` wraps ``loop.call_later`` for production use.
- :class:`ManualScheduler` keeps a virtual clock that only moves when
  :meth:`ManualScheduler.advance` is called, so backoff timing can be
  tested deterministically without real sleeps.
"""

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Protocol, Tuple

# Absorbs float drift when tests advance the clock in small steps
_EPSILON = 1e-9


class TimerHandle(Protocol):
    """Handle returned by a scheduler; cancelling it is idempotent."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Protocol for injectable delayed callbacks."""

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(delay_seconds, 0.0), callback)


class ManualTimer:
    """Timer entry owned by a :class:`ManualScheduler`."""

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual-clock scheduler for deterministic tests.

    Example:
        >>> scheduler = ManualScheduler()
        >>> fired = []
        >>> _ = scheduler.call_later(0.5, lambda: fired.append(scheduler.now))
        >>> scheduler.advance(0.499)
        >>> fired
        []
        >>> scheduler.advance(0.001)
        >>> fired
        [0.5]
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._counter = itertools.count()
        self._queue: List[Tuple[float, int, ManualTimer]] = []

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + max(delay_seconds, 0.0), callback)
        heapq.heappush(self._queue, (timer.due, next(self._counter), timer))
        return timer

    @property
    def pending(self) -> List[ManualTimer]:
        """Live (not cancelled) timers ordered by due time."""
        return [timer for _, _, timer in sorted(self._queue) if not timer.cancelled]

    def next_delay(self) -> Optional[float]:
        """Seconds until the next live timer, or ``None`` if nothing is pending."""
        pending = self.pending
        if not pending:
            return None
        return pending[0].due - self.now

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that falls due in order.

        Timers scheduled by callbacks during the advance fire too if they
        become due within the window.
        """
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target + _EPSILON:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = due
            timer.cancelled = True
            timer.callback()
        self.now = target
