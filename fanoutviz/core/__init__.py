"""Clock, timer and scheduling primitives."""

from fanoutviz.core.event import TimerEvent
from fanoutviz.core.event_heap import EventHeap
from fanoutviz.core.scheduler import AsyncioScheduler, Scheduler, VirtualScheduler
from fanoutviz.core.temporal import Duration, Instant

__all__ = [
    "TimerEvent",
    "EventHeap",
    "Scheduler",
    "VirtualScheduler",
    "AsyncioScheduler",
    "Instant",
    "Duration",
]
