"""
Cancellable timer scheduling for debounce, auto-save and idle polling.

All timers belong to a Scheduler so that a session can cancel every pending
callback with one call on teardown. ``reschedule`` is the single primitive
used for debouncing: it cancels the task registered under a key, if any, and
schedules a replacement.

Times are expressed in milliseconds.
"""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Callback = Callable[[], Any]


class ScheduledTask:
    """
    Handle for a scheduled callback.

    Attributes:
        due: Scheduler time (ms) at which the callback fires next
        interval: Repeat interval in ms, or None for one-shot tasks
        key: Optional reschedule key the task is registered under
    """

    def __init__(
        self,
        scheduler: "Scheduler",
        due: float,
        callback: Callback,
        interval: float | None = None,
        key: str | None = None,
    ):
        self._scheduler = scheduler
        self.due = due
        self.callback = callback
        self.interval = interval
        self.key = key
        self.cancelled = False
        self.fired = False
        self.handle: Any = None

    @property
    def pending(self) -> bool:
        """Whether the callback can still fire."""
        if self.cancelled:
            return False
        return self.interval is not None or not self.fired

    def cancel(self) -> bool:
        """Cancel the task. Returns False if it was no longer pending."""
        if not self.pending:
            return False
        self.cancelled = True
        self._scheduler._forget(self)
        return True

    def __repr__(self) -> str:
        state = "pending" if self.pending else ("cancelled" if self.cancelled else "done")
        return f"ScheduledTask(key={self.key!r}, due={self.due}, {state})"


class Scheduler(ABC):
    """
    Base class for timer sources.

    Subclasses provide the clock and the mechanism that eventually calls
    ``_fire`` for each due task.
    """

    def __init__(self) -> None:
        self._live: set[ScheduledTask] = set()
        self._keyed: dict[str, ScheduledTask] = {}

    @abstractmethod
    def now(self) -> float:
        """Current scheduler time in milliseconds."""
        pass

    @abstractmethod
    def _arm(self, task: ScheduledTask, delay_ms: float) -> None:
        """Arrange for ``_fire(task)`` to run after ``delay_ms``."""
        pass

    @abstractmethod
    def _disarm(self, task: ScheduledTask) -> None:
        """Stop a previously armed task from firing."""
        pass

    def call_later(self, delay_ms: float, callback: Callback, key: str | None = None) -> ScheduledTask:
        """Run ``callback`` once after ``delay_ms``."""
        if delay_ms < 0:
            raise ValueError("delay_ms must be non-negative")
        task = ScheduledTask(self, self.now() + delay_ms, callback, key=key)
        self._live.add(task)
        self._arm(task, delay_ms)
        return task

    def call_every(self, interval_ms: float, callback: Callback, key: str | None = None) -> ScheduledTask:
        """Run ``callback`` every ``interval_ms`` until cancelled."""
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if key is not None:
            self.cancel(key)
        task = ScheduledTask(self, self.now() + interval_ms, callback, interval=interval_ms, key=key)
        self._live.add(task)
        if key is not None:
            self._keyed[key] = task
        self._arm(task, interval_ms)
        return task

    def reschedule(self, key: str, delay_ms: float, callback: Callback) -> ScheduledTask:
        """Cancel the task registered under ``key`` (if pending) and schedule a new one."""
        self.cancel(key)
        task = self.call_later(delay_ms, callback, key=key)
        self._keyed[key] = task
        return task

    def cancel(self, key: str) -> bool:
        """Cancel the task registered under ``key``."""
        task = self._keyed.pop(key, None)
        if task is None:
            return False
        return task.cancel()

    def get(self, key: str) -> ScheduledTask | None:
        """Pending task registered under ``key``, if any."""
        task = self._keyed.get(key)
        return task if task is not None and task.pending else None

    def cancel_all(self) -> int:
        """Cancel every pending task. Returns the number cancelled."""
        tasks = list(self._live)
        cancelled = sum(1 for task in tasks if task.cancel())
        self._keyed.clear()
        if cancelled:
            logger.debug(f"Cancelled {cancelled} pending timer(s)")
        return cancelled

    @property
    def pending_count(self) -> int:
        return sum(1 for task in self._live if task.pending)

    def _forget(self, task: ScheduledTask) -> None:
        self._live.discard(task)
        if task.key is not None and self._keyed.get(task.key) is task:
            del self._keyed[task.key]
        self._disarm(task)

    def _fire(self, task: ScheduledTask) -> None:
        if not task.pending:
            return
        if task.interval is None:
            task.fired = True
            self._live.discard(task)
            if task.key is not None and self._keyed.get(task.key) is task:
                del self._keyed[task.key]
        else:
            task.due += task.interval
            self._arm(task, task.interval)
        task.callback()


class ManualScheduler(Scheduler):
    """
    Scheduler driven by an explicit virtual clock.

    Nothing fires until ``advance`` is called, which makes timer behavior
    deterministic for tests and for hosts that pump their own event loop.
    """

    def __init__(self, start: float = 0.0):
        super().__init__()
        self._time = start
        self._queue: list[tuple[float, int, ScheduledTask]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._time

    def _arm(self, task: ScheduledTask, delay_ms: float) -> None:
        heapq.heappush(self._queue, (task.due, next(self._counter), task))

    def _disarm(self, task: ScheduledTask) -> None:
        # Cancelled tasks are skipped when popped
        pass

    def advance(self, ms: float) -> int:
        """
        Move the clock forward, firing every task that falls due on the way.

        Args:
            ms: Milliseconds to advance

        Returns:
            Number of callbacks fired
        """
        if ms < 0:
            raise ValueError("Cannot move the clock backwards")
        target = self._time + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if not task.pending or task.due != due:
                continue
            self._time = due
            self._fire(task)
            fired += 1
        self._time = target
        return fired

    def run_pending(self) -> int:
        """Fire tasks already due without moving the clock."""
        return self.advance(0)


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by an asyncio event loop.

    The loop is looked up lazily so the scheduler can be created outside a
    running loop and used once the loop is running.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        super().__init__()
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time() * 1000.0

    def _arm(self, task: ScheduledTask, delay_ms: float) -> None:
        task.handle = self.loop.call_later(delay_ms / 1000.0, self._fire, task)

    def _disarm(self, task: ScheduledTask) -> None:
        if task.handle is not None:
            task.handle.cancel()
            task.handle = None
