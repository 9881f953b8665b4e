"""Timer events scheduled on a Scheduler.

A TimerEvent pairs a firing time with a zero-argument callback. Events sort
by (time, insertion order) so that callbacks armed for the same instant fire
in the order they were armed.
"""

import logging
from collections.abc import Callable
from itertools import count
from typing import Any

from fanoutviz.core.temporal import Instant

logger = logging.getLogger(__name__)

_global_event_counter = count()


class TimerEvent:
    """A cancellable callback bound to a point in time.

    Cancellation is lazy: a cancelled event stays wherever the scheduler keeps
    it and is skipped when its time comes.

    Attributes:
        time: When the callback should run.
        event_type: Human-readable label for debugging and logging.
    """

    __slots__ = ("_cancelled", "_fired", "_fn", "_sort_index", "event_type", "time")

    def __init__(self, time: Instant, event_type: str, fn: Callable[[], Any]):
        if fn is None:
            raise ValueError(f"TimerEvent '{event_type}' must have a callback.")
        self.time = time
        self.event_type = event_type
        self._fn = fn
        self._sort_index = next(_global_event_counter)
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    def cancel(self) -> None:
        """Mark this event as cancelled. Cancelling twice, or after firing, is a no-op."""
        self._cancelled = True

    def invoke(self) -> None:
        """Run the callback unless the event was cancelled."""
        if self._cancelled or self._fired:
            return
        self._fired = True
        logger.debug("Firing %s at %r", self.event_type, self.time)
        self._fn()

    def __lt__(self, other: "TimerEvent") -> bool:
        if self.time != other.time:
            return self.time < other.time
        return self._sort_index < other._sort_index

    def __repr__(self) -> str:
        return f"TimerEvent({self.time!r}, {self.event_type!r})"
