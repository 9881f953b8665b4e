"""Timer abstraction that drives the animation clock.

Everything time-dependent in fanoutviz (dispatch, ticks, the delayed view
clear, the auto trigger) goes through a Scheduler. Two implementations exist:

- VirtualScheduler advances a virtual clock through an EventHeap. It is fully
  deterministic and is what tests and offline replays use.
- AsyncioScheduler maps timers onto a running asyncio event loop and runs
  blocking collaborator calls in the loop's executor.

Both are single-threaded from the caller's point of view: every callback,
including the completion callback of ``submit``, runs on the scheduler's own
thread, one at a time.

Example::

    scheduler = VirtualScheduler()
    scheduler.call_later(Duration.from_ms(10), lambda: print("tick"))
    scheduler.run_until_idle()
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import Executor, Future
from typing import Any, Protocol, TypeVar

from fanoutviz.core.event import TimerEvent
from fanoutviz.core.event_heap import EventHeap
from fanoutviz.core.temporal import Duration, Instant

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResultFuture(Protocol):
    """The part of concurrent.futures.Future / asyncio.Future that callbacks use."""

    def result(self) -> Any: ...


SubmitCallback = Callable[[ResultFuture], None]


class Scheduler(ABC):
    """Clock plus cancellable timers plus an off-clock call facility."""

    @abstractmethod
    def now(self) -> Instant:
        """Current time on this scheduler's clock."""

    @abstractmethod
    def call_later(
        self, delay: Duration, fn: Callable[[], Any], event_type: str = "timer"
    ) -> TimerEvent:
        """Arm ``fn`` to run once after ``delay``.

        Returns:
            The armed TimerEvent; call ``cancel()`` on it to disarm.
        """

    @abstractmethod
    def submit(self, fn: Callable[[], T], callback: SubmitCallback) -> None:
        """Run a potentially blocking ``fn`` and hand its future to ``callback``.

        The callback always runs on the scheduler's clock. It receives a
        future whose ``result()`` either returns fn's value or re-raises the
        exception fn raised.
        """


class VirtualScheduler(Scheduler):
    """Deterministic scheduler over a virtual clock.

    Time only moves when ``run_until``, ``run_for``, ``run_until_idle`` or
    ``elapse`` is called. Submitted calls run synchronously; to model a slow
    collaborator, call ``elapse`` from inside the submitted function.

    Args:
        start_time: Initial clock value.
    """

    def __init__(self, start_time: Instant = Instant.Epoch):
        self._now = start_time
        self._heap = EventHeap()
        self._events_processed = 0

    @property
    def events_processed(self) -> int:
        return self._events_processed

    @property
    def pending(self) -> int:
        """Number of armed, non-cancelled timers."""
        return self._heap.size()

    def now(self) -> Instant:
        return self._now

    def call_later(
        self, delay: Duration, fn: Callable[[], Any], event_type: str = "timer"
    ) -> TimerEvent:
        if delay < Duration.ZERO:
            raise ValueError(f"delay must be >= 0, got {delay!r}")
        event = TimerEvent(self._now + delay, event_type, fn)
        self._heap.push(event)
        return event

    def submit(self, fn: Callable[[], T], callback: SubmitCallback) -> None:
        future: Future = Future()
        try:
            future.set_result(fn())
        except Exception as exc:
            future.set_exception(exc)
        self.call_later(Duration.ZERO, lambda: callback(future), "submit.done")

    def elapse(self, duration: Duration) -> None:
        """Move the clock forward without firing timers.

        Models time spent blocked inside a call; timers that came due in the
        meantime fire late, on the next run.
        """
        if duration < Duration.ZERO:
            raise ValueError(f"duration must be >= 0, got {duration!r}")
        self._now = self._now + duration

    def run_until(self, until: Instant) -> int:
        """Fire every timer due at or before ``until`` and park the clock there.

        Returns:
            Number of timers fired.
        """
        fired = 0
        while (event := self._heap.pop_due(until)) is not None:
            if event.time > self._now:
                self._now = event.time
            event.invoke()
            fired += 1
        if until > self._now:
            self._now = until
        self._events_processed += fired
        return fired

    def run_for(self, duration: Duration) -> int:
        return self.run_until(self._now + duration)

    def run_until_idle(self, max_events: int = 1_000_000) -> int:
        """Fire timers until none remain.

        Raises:
            RuntimeError: If more than ``max_events`` fire, which means some
                component keeps re-arming itself (e.g. a running auto trigger).
        """
        fired = 0
        while (event := self._heap.pop()) is not None:
            if fired >= max_events:
                raise RuntimeError(
                    f"VirtualScheduler still busy after {max_events} events; "
                    "use run_for() with periodic timers"
                )
            if event.time > self._now:
                self._now = event.time
            event.invoke()
            fired += 1
        self._events_processed += fired
        return fired


class AsyncioScheduler(Scheduler):
    """Wall-clock scheduler backed by an asyncio event loop.

    Must be constructed while the loop is running (or with an explicit loop).
    Blocking calls passed to ``submit`` run on ``executor`` (the loop's
    default thread pool when None).

    Args:
        loop: Event loop to schedule on. Defaults to the running loop.
        executor: Executor for submitted blocking calls.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        executor: Executor | None = None,
    ):
        self._loop = loop or asyncio.get_running_loop()
        self._executor = executor

    def now(self) -> Instant:
        return Instant.from_seconds(self._loop.time())

    def call_later(
        self, delay: Duration, fn: Callable[[], Any], event_type: str = "timer"
    ) -> TimerEvent:
        if delay < Duration.ZERO:
            raise ValueError(f"delay must be >= 0, got {delay!r}")
        event = TimerEvent(self.now() + delay, event_type, fn)
        self._loop.call_later(delay.to_seconds(), event.invoke)
        return event

    def submit(self, fn: Callable[[], T], callback: SubmitCallback) -> None:
        future = self._loop.run_in_executor(self._executor, fn)
        future.add_done_callback(callback)
