import heapq

from fanoutviz.core.event import TimerEvent
from fanoutviz.core.temporal import Instant


class EventHeap:
    def __init__(self, events: list[TimerEvent] | None = None):
        """Store TimerEvents directly on the heap.

        TimerEvent orders itself by (time, insertion order), so there's no need
        to store (time, event) tuples. Cancelled events are dropped lazily when
        they reach the top.
        """
        self._heap = list(events) if events else []
        heapq.heapify(self._heap)

    def push(self, event: TimerEvent) -> None:
        heapq.heappush(self._heap, event)

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)

    def pop_due(self, until: Instant) -> TimerEvent | None:
        """Pop the earliest live event at or before ``until``, or None."""
        self._drop_cancelled()
        if self._heap and self._heap[0].time <= until:
            return heapq.heappop(self._heap)
        return None

    def pop(self) -> TimerEvent | None:
        """Pop the earliest live event, or None when only cancelled ones remain."""
        self._drop_cancelled()
        if not self._heap:
            return None
        return heapq.heappop(self._heap)

    def has_events(self) -> bool:
        self._drop_cancelled()
        return bool(self._heap)

    def size(self) -> int:
        return sum(1 for event in self._heap if not event.cancelled)
