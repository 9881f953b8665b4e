"""Periodic, probabilistically gated starts of new runs."""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING

from fanoutviz.config import EngineConfig
from fanoutviz.core.temporal import Duration

if TYPE_CHECKING:
    from fanoutviz.core.event import TimerEvent
    from fanoutviz.core.scheduler import Scheduler
    from fanoutviz.engine import SimulationEngine

logger = logging.getLogger(__name__)


class AutoTriggerScheduler:
    """Starts a run every ``period`` when the engine is idle and a draw exceeds ``threshold``.

    At most one timer is armed at a time. A window where the engine is busy
    or the draw falls short is skipped, never deferred.

    Use as a context manager to tie it to a presenter's lifetime::

        with AutoTriggerScheduler(engine, scheduler):
            scheduler.run_for(Duration.from_seconds(60))

    Args:
        engine: Engine to start runs on.
        scheduler: Scheduler providing the periodic timer.
        period: Time between windows; defaults to ``config.trigger_period``.
        threshold: A window fires only if ``rng.random() > threshold``;
            defaults to ``config.trigger_threshold``.
        rng: Random source for the gating draw.
        config: Source of the default period and threshold.
    """

    def __init__(
        self,
        engine: SimulationEngine,
        scheduler: Scheduler,
        period: Duration | None = None,
        threshold: float | None = None,
        rng: random.Random | None = None,
        config: EngineConfig | None = None,
    ):
        config = config or EngineConfig()
        period = config.trigger_period if period is None else period
        threshold = config.trigger_threshold if threshold is None else threshold
        if period <= Duration.ZERO:
            raise ValueError(f"period must be > 0, got {period!r}")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be in [0, 1], got {threshold}")

        self._engine = engine
        self._scheduler = scheduler
        self._period = period
        self._threshold = threshold
        self._rng = rng or random.Random()
        self._timer: TimerEvent | None = None

        self.windows = 0
        self.starts = 0

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        """Arm the periodic timer. Calling start() while running is a no-op."""
        if self._timer is not None:
            return
        logger.debug("Auto trigger started: period=%r threshold=%.2f", self._period, self._threshold)
        self._arm()

    def stop(self) -> None:
        """Disarm the timer. A run already in flight is not affected."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        logger.debug("Auto trigger stopped after %d windows, %d starts", self.windows, self.starts)

    def _arm(self) -> None:
        self._timer = self._scheduler.call_later(self._period, self._on_window, "trigger.window")

    def _on_window(self) -> None:
        self._arm()
        self.windows += 1

        if not self._engine.is_idle:
            return
        if self._rng.random() > self._threshold and self._engine.start():
            self.starts += 1

    def __enter__(self) -> AutoTriggerScheduler:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
