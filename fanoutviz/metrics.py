"""Running aggregate metrics across simulation runs.

MetricsAggregator is the single owner of the Metrics counters. Readers get
frozen Metrics snapshots and never see a half-applied update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metrics:
    """Immutable snapshot of the aggregate counters.

    Attributes:
        total_requests: Number of runs recorded.
        avg_latency_ms: Mean of every recorded latency.
        cache_hit_rate: Percentage in [0, 100], owned by an external source.
        active_requests: Runs currently in flight (0 or 1).
    """

    total_requests: int = 0
    avg_latency_ms: float = 0.0
    cache_hit_rate: float = 0.0
    active_requests: int = 0

    def to_dict(self) -> dict[str, float | int]:
        return {
            "total_requests": self.total_requests,
            "avg_latency_ms": self.avg_latency_ms,
            "cache_hit_rate": self.cache_hit_rate,
            "active_requests": self.active_requests,
        }


class MetricsAggregator:
    """Owns the process-wide Metrics and updates them incrementally.

    The mean is maintained as ``avg += (x - avg) / n``, which is the
    incremental form of ``(avg * (n - 1) + x) / n`` but never multiplies the
    running mean back up by the count, so it stays accurate over millions of
    recordings.
    """

    def __init__(self) -> None:
        self._total_requests = 0
        self._avg_latency_ms = 0.0
        self._cache_hit_rate = 0.0
        self._active_requests = 0

    @property
    def metrics(self) -> Metrics:
        return self.snapshot()

    def snapshot(self) -> Metrics:
        return Metrics(
            total_requests=self._total_requests,
            avg_latency_ms=self._avg_latency_ms,
            cache_hit_rate=self._cache_hit_rate,
            active_requests=self._active_requests,
        )

    def record(self, latency_ms: float) -> None:
        """Fold one completed run's latency into the counters.

        Raises:
            ValueError: If latency_ms is negative.
        """
        if latency_ms < 0:
            raise ValueError(f"latency_ms must be >= 0, got {latency_ms}")

        self._total_requests += 1
        self._avg_latency_ms += (latency_ms - self._avg_latency_ms) / self._total_requests
        logger.debug(
            "Recorded latency %.1fms: total=%d avg=%.2fms",
            latency_ms,
            self._total_requests,
            self._avg_latency_ms,
        )

    def mark_active(self) -> None:
        self._active_requests = 1

    def reset_active(self) -> None:
        self._active_requests = 0

    def update_cache_hit_rate(self, rate: float) -> None:
        """Store the cache hit rate reported by its external owner.

        Raises:
            ValueError: If rate is outside [0, 100].
        """
        if not 0.0 <= rate <= 100.0:
            raise ValueError(f"cache_hit_rate must be in [0, 100], got {rate}")
        self._cache_hit_rate = float(rate)
