"""SimulationEngine: one fan-out/fan-in visualization run at a time.

The engine is a small state machine driven entirely by Scheduler callbacks:

    idle -> dispatching -> animating -> draining -> idle

1. **dispatching**: pick a scenario, ask the collaborator for the real
   latency and per-subsystem statuses. If the collaborator is unavailable,
   synthesize a result from the elapsed time instead of aborting.
2. **animating**: publish an initial view, then ``steps`` ticks spaced
   ``latency / steps`` apart. Overall progress is the fraction of ticks
   elapsed; each subsystem's progress is elapsed time over its mock
   duration, so short subsystems finish early.
3. **draining**: record the latency exactly once, then clear the view after
   ``drain_delay + latency`` and return to idle.

Example::

    scheduler = VirtualScheduler()
    engine = SimulationEngine(
        subsystems=DEFAULT_SUBSYSTEMS,
        collaborator=my_collaborator,
        scheduler=scheduler,
    )
    engine.subscribe(lambda view: print(view and view.total_progress))
    engine.start()
    scheduler.run_until_idle()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import replace

from fanoutviz.collaborator import (
    CollaboratorResponse,
    CollaboratorUnavailable,
    LatencyCollaborator,
)
from fanoutviz.config import EngineConfig
from fanoutviz.core.scheduler import ResultFuture, Scheduler
from fanoutviz.core.temporal import Duration, Instant
from fanoutviz.history import RunHistory, RunRecord
from fanoutviz.metrics import Metrics, MetricsAggregator
from fanoutviz.model import (
    EngineState,
    ServiceSlot,
    SimulationView,
    SubsystemDescriptor,
)
from fanoutviz.scenarios import FixedScenario, ScenarioPicker
from fanoutviz.status import classify

logger = logging.getLogger(__name__)

ViewListener = Callable[[SimulationView | None], None]
CompletionListener = Callable[[RunRecord], None]


class SimulationEngine:
    """Orchestrates visualization runs over a Scheduler.

    Only this class writes the current SimulationView. Readers get immutable
    snapshots through ``view`` or through ``subscribe``.

    Args:
        subsystems: Subsystems to animate, in display order.
        collaborator: Source of latency and statuses.
        scheduler: Clock and timers the run is driven by.
        aggregator: Metrics owner; a fresh one is created when None.
        config: Tuning constants.
        scenario_picker: Chooses the scenario per run; defaults to a
            ScenarioPicker using ``config.forced_timeout_probability``.
        history: Recent-runs log; a fresh one is created when None.
        wall_clock: Epoch-seconds source used to derive trace ids.
    """

    def __init__(
        self,
        subsystems: Sequence[SubsystemDescriptor],
        collaborator: LatencyCollaborator,
        scheduler: Scheduler,
        aggregator: MetricsAggregator | None = None,
        config: EngineConfig | None = None,
        scenario_picker: ScenarioPicker | FixedScenario | None = None,
        history: RunHistory | None = None,
        wall_clock: Callable[[], float] = time.time,
    ):
        if not subsystems:
            raise ValueError("At least one subsystem must be configured")
        keys = [s.key for s in subsystems]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Subsystem keys must be unique, got {keys}")

        self._subsystems = tuple(subsystems)
        self._collaborator = collaborator
        self._scheduler = scheduler
        self._aggregator = aggregator if aggregator is not None else MetricsAggregator()
        self._config = config or EngineConfig()
        self._scenario_picker = scenario_picker or ScenarioPicker(
            self._config.forced_timeout_probability
        )
        self._history = history if history is not None else RunHistory()
        self._wall_clock = wall_clock

        self._state = EngineState.IDLE
        self._view: SimulationView | None = None
        self._listeners: list[ViewListener] = []
        self._completion_listeners: list[CompletionListener] = []

        # Per-run scratch state, reset by start()
        self._trace_id = ""
        self._scenario_key = ""
        self._dispatch_started: Instant | None = None
        self._step = 0
        self._last_trace_ms = -1

    # --- Read-only surface ------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state is EngineState.IDLE

    @property
    def view(self) -> SimulationView | None:
        """The most recently published snapshot, or None between runs."""
        return self._view

    @property
    def metrics(self) -> Metrics:
        return self._aggregator.snapshot()

    @property
    def history(self) -> RunHistory:
        return self._history

    @property
    def subsystems(self) -> tuple[SubsystemDescriptor, ...]:
        return self._subsystems

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """Register a listener for every published snapshot.

        Returns:
            A callable that unregisters the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add_completion_listener(self, listener: CompletionListener) -> None:
        """Register a listener called with each run's RunRecord when it drains."""
        self._completion_listeners.append(listener)

    # --- Lifecycle --------------------------------------------------------

    def start(self) -> bool:
        """Begin a new run if none is in flight.

        Returns:
            True if a run was started, False if one was already in progress.
        """
        if self._state is not EngineState.IDLE:
            logger.debug("start() ignored: run %s is %s", self._trace_id, self._state.value)
            return False

        self._transition(EngineState.DISPATCHING)
        self._trace_id = self._next_trace_id()
        self._scenario_key = self._scenario_picker.pick()
        self._dispatch_started = self._scheduler.now()
        self._step = 0
        self._aggregator.mark_active()

        logger.info(
            "Run %s dispatching scenario %s",
            self._trace_id,
            self._scenario_key,
            extra=self._log_extra(),
        )
        scenario_key = self._scenario_key
        try:
            self._scheduler.submit(
                lambda: self._collaborator.fetch(scenario_key),
                self._on_dispatched,
            )
        except Exception:
            logger.exception(
                "Run %s: could not dispatch %s; animating fallback",
                self._trace_id,
                scenario_key,
                extra=self._log_extra(),
            )
            self._begin_animation(self._fallback_response())
        return True

    def _next_trace_id(self) -> str:
        started_ms = int(self._wall_clock() * 1000)
        # Two runs can start inside the same millisecond on a fast virtual clock.
        started_ms = max(started_ms, self._last_trace_ms + 1)
        self._last_trace_ms = started_ms
        return f"trace-{started_ms}"

    def _on_dispatched(self, future: ResultFuture) -> None:
        try:
            response = future.result()
            if not isinstance(response, CollaboratorResponse):
                raise TypeError(
                    f"collaborator returned {type(response).__name__}, expected CollaboratorResponse"
                )
        except CollaboratorUnavailable as exc:
            logger.warning(
                "Run %s: collaborator unavailable for %s (%s); animating fallback",
                self._trace_id,
                self._scenario_key,
                exc,
                extra=self._log_extra(),
            )
            response = self._fallback_response()
        except asyncio.CancelledError:
            logger.warning(
                "Run %s: dispatch of %s was cancelled; animating fallback",
                self._trace_id,
                self._scenario_key,
                extra=self._log_extra(),
            )
            response = self._fallback_response()
        except Exception:
            # Contract violations degrade to the fallback path too.
            logger.exception(
                "Run %s: collaborator raised unexpectedly for %s; animating fallback",
                self._trace_id,
                self._scenario_key,
                extra=self._log_extra(),
            )
            response = self._fallback_response()
        self._begin_animation(response)

    def _fallback_response(self) -> CollaboratorResponse:
        elapsed = self._scheduler.now() - self._dispatch_started
        return CollaboratorResponse.fallback(elapsed.to_ms(), (s.key for s in self._subsystems))

    def _begin_animation(self, response: CollaboratorResponse) -> None:
        self._transition(EngineState.ANIMATING)

        services = tuple(
            ServiceSlot(descriptor=s, final_outcome=classify(response.status_for(s.key)))
            for s in self._subsystems
        )
        self._publish(
            SimulationView(
                trace_id=self._trace_id,
                services=services,
                final_latency_ms=response.total_latency_ms,
                scenario_key=self._scenario_key,
                errors=tuple(response.errors),
            )
        )
        self._arm_next_tick()

    def _tick_interval(self) -> Duration:
        interval = Duration.from_ms(self._view.final_latency_ms / self._config.steps)
        return max(interval, self._config.min_tick_interval)

    def _arm_next_tick(self) -> None:
        self._scheduler.call_later(self._tick_interval(), self._on_tick, "engine.tick")

    def _on_tick(self) -> None:
        steps = self._config.steps
        self._step += 1
        step = self._step

        view = self._view
        elapsed_ms = step * (view.final_latency_ms / steps)
        self._publish(
            replace(
                view,
                services=tuple(slot.advanced_to(elapsed_ms) for slot in view.services),
                total_progress=min(100.0, step / steps * 100.0),
                step=step,
            )
        )

        if step >= steps:
            self._drain()
        else:
            self._arm_next_tick()

    def _drain(self) -> None:
        self._transition(EngineState.DRAINING)
        view = self._view

        self._aggregator.record(view.final_latency_ms)
        self._aggregator.reset_active()

        record = RunRecord(
            trace_id=view.trace_id,
            scenario_key=view.scenario_key,
            latency_ms=view.final_latency_ms,
            outcomes={slot.key: slot.final_outcome for slot in view.services},
            errors=view.errors,
        )
        self._history.append(record)
        logger.info(
            "Run %s complete in %.1fms: %s",
            record.trace_id,
            record.latency_ms,
            {k: o.value for k, o in record.outcomes.items()},
            extra=self._log_extra(),
        )
        for listener in list(self._completion_listeners):
            try:
                listener(record)
            except Exception:
                logger.exception("Completion listener %r failed", listener)

        clear_after = self._config.drain_delay + Duration.from_ms(view.final_latency_ms)
        self._scheduler.call_later(clear_after, self._clear, "engine.clear")

    def _clear(self) -> None:
        self._publish(None)
        self._transition(EngineState.IDLE)

    # --- Internals ----------------------------------------------------------

    def _log_extra(self) -> dict[str, str]:
        return {"trace_id": self._trace_id}

    def _transition(self, new_state: EngineState) -> None:
        logger.debug(
            "Engine %s -> %s (%s)", self._state.value, new_state.value, self._trace_id or "-"
        )
        self._state = new_state

    def _publish(self, view: SimulationView | None) -> None:
        self._view = view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("View listener %r failed", listener)
