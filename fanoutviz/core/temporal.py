"""Time values used by the animation clock.

Instant is a point on a scheduler's timeline and Duration is a span between
two instants. Both store integer nanoseconds so that repeated tick arithmetic
never accumulates floating-point error.
"""

from __future__ import annotations

from functools import total_ordering
from typing import Union

_NANOS_PER_SECOND = 1_000_000_000
_NANOS_PER_MS = 1_000_000


@total_ordering
class Duration:
    """A non-absolute span of time with nanosecond resolution."""

    __slots__ = ("nanoseconds",)

    def __init__(self, nanoseconds: int):
        self.nanoseconds = int(nanoseconds)

    @classmethod
    def from_seconds(cls, seconds: float) -> Duration:
        return cls(round(seconds * _NANOS_PER_SECOND))

    @classmethod
    def from_ms(cls, ms: float) -> Duration:
        return cls(round(ms * _NANOS_PER_MS))

    def to_seconds(self) -> float:
        return self.nanoseconds / _NANOS_PER_SECOND

    def to_ms(self) -> float:
        return self.nanoseconds / _NANOS_PER_MS

    def __add__(self, other: Duration) -> Duration:
        if isinstance(other, Duration):
            return Duration(self.nanoseconds + other.nanoseconds)
        return NotImplemented

    def __sub__(self, other: Duration) -> Duration:
        if isinstance(other, Duration):
            return Duration(self.nanoseconds - other.nanoseconds)
        return NotImplemented

    def __mul__(self, factor: Union[int, float]) -> Duration:
        if isinstance(factor, (int, float)):
            return Duration(round(self.nanoseconds * factor))
        return NotImplemented

    __rmul__ = __mul__

    def __eq__(self, other):
        if not isinstance(other, Duration):
            return NotImplemented
        return self.nanoseconds == other.nanoseconds

    def __lt__(self, other):
        if not isinstance(other, Duration):
            return NotImplemented
        return self.nanoseconds < other.nanoseconds

    def __hash__(self):
        return hash(("Duration", self.nanoseconds))

    def __repr__(self) -> str:
        return f"Duration({self.to_ms():g}ms)"


Duration.ZERO = Duration(0)


@total_ordering
class Instant:
    """A point in time on a scheduler's clock."""

    __slots__ = ("nanoseconds",)

    def __init__(self, nanoseconds: int):
        self.nanoseconds = int(nanoseconds)

    @classmethod
    def from_seconds(cls, seconds: float) -> Instant:
        return cls(round(seconds * _NANOS_PER_SECOND))

    def to_seconds(self) -> float:
        return self.nanoseconds / _NANOS_PER_SECOND

    def to_ms(self) -> float:
        return self.nanoseconds / _NANOS_PER_MS

    def __add__(self, other: Duration) -> Instant:
        if isinstance(other, Duration):
            return Instant(self.nanoseconds + other.nanoseconds)
        return NotImplemented

    def __sub__(self, other: Union[Instant, Duration]):
        """Instant - Instant gives a Duration; Instant - Duration gives an Instant."""
        if isinstance(other, Instant):
            return Duration(self.nanoseconds - other.nanoseconds)
        if isinstance(other, Duration):
            return Instant(self.nanoseconds - other.nanoseconds)
        return NotImplemented

    def __eq__(self, other):
        if not isinstance(other, Instant):
            return NotImplemented
        return self.nanoseconds == other.nanoseconds

    def __lt__(self, other):
        if not isinstance(other, Instant):
            return NotImplemented
        return self.nanoseconds < other.nanoseconds

    def __hash__(self):
        return hash(("Instant", self.nanoseconds))

    def __repr__(self) -> str:
        return f"Instant({self.to_seconds():g}s)"


Instant.Epoch = Instant(0)
