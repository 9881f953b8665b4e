"""Data types shared by the engine and its readers.

SubsystemDescriptor is static configuration. ServiceSlot and SimulationView
are immutable snapshots: the engine builds a fresh SimulationView on every
tick instead of mutating the previous one, so whatever a reader holds is
always internally consistent.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from fanoutviz.status import Outcome


class EngineState(Enum):
    """Lifecycle of a SimulationEngine."""

    IDLE = "idle"
    DISPATCHING = "dispatching"
    ANIMATING = "animating"
    DRAINING = "draining"


class RunState(Enum):
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SubsystemDescriptor:
    """One downstream subsystem of the fan-out.

    Args:
        name: Display name, e.g. "Price Service".
        key: Correlates to the ``<key>_status`` field of the upstream response.
        mock_duration_ms: Assumed individual completion time, used only to
            shape the synthesized timeline.
        color_tag: Presentation hint, opaque to the engine.

    Raises:
        ValueError: If key is empty or mock_duration_ms is not positive.
    """

    name: str
    key: str
    mock_duration_ms: int
    color_tag: str = ""

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError(f"Subsystem '{self.name}' must have a key")
        if self.mock_duration_ms <= 0:
            raise ValueError(
                f"mock_duration_ms must be > 0, got {self.mock_duration_ms} for '{self.name}'"
            )


@dataclass(frozen=True)
class ServiceError:
    """Diagnostic record attached to a run for display."""

    service_key: str
    message: str


@dataclass(frozen=True)
class ServiceSlot:
    """Per-run progress of one subsystem.

    ``final_outcome`` is fixed when the slot is created; only ``progress``
    and ``run_state`` change from tick to tick.
    """

    descriptor: SubsystemDescriptor
    final_outcome: Outcome
    progress: float = 0.0
    run_state: RunState = RunState.RUNNING

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def key(self) -> str:
        return self.descriptor.key

    @property
    def mock_duration_ms(self) -> int:
        return self.descriptor.mock_duration_ms

    @property
    def color_tag(self) -> str:
        return self.descriptor.color_tag

    def advanced_to(self, elapsed_ms: float) -> ServiceSlot:
        """Return this slot as it looks ``elapsed_ms`` into the run."""
        progress = min(100.0, elapsed_ms / self.descriptor.mock_duration_ms * 100.0)
        run_state = RunState.COMPLETE if progress >= 100.0 else RunState.RUNNING
        return replace(self, progress=progress, run_state=run_state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "key": self.key,
            "mock_duration_ms": self.mock_duration_ms,
            "color_tag": self.color_tag,
            "progress": self.progress,
            "run_state": self.run_state.value,
            "final_outcome": self.final_outcome.value,
        }


@dataclass(frozen=True)
class SimulationView:
    """Read-only snapshot of one run, as published after each tick.

    Attributes:
        trace_id: Unique per run, derived from the start timestamp.
        services: One slot per configured subsystem, in configuration order.
        total_progress: Fraction of ticks elapsed, as a percentage.
        final_latency_ms: End-to-end latency the run is animated over.
        scenario_key: The scenario the run was dispatched for.
        errors: Diagnostic records reported for the run.
        step: Tick index; 0 for the initial view.
    """

    trace_id: str
    services: tuple[ServiceSlot, ...]
    final_latency_ms: float
    total_progress: float = 0.0
    scenario_key: str = ""
    errors: tuple[ServiceError, ...] = field(default_factory=tuple)
    step: int = 0

    @property
    def is_complete(self) -> bool:
        return self.total_progress >= 100.0

    def slot(self, key: str) -> ServiceSlot:
        """Look up a slot by subsystem key.

        Raises:
            KeyError: If no slot has this key.
        """
        for service in self.services:
            if service.key == key:
                return service
        raise KeyError(key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "scenario_key": self.scenario_key,
            "step": self.step,
            "total_progress": self.total_progress,
            "final_latency_ms": self.final_latency_ms,
            "services": [s.to_dict() for s in self.services],
            "errors": [{"service_key": e.service_key, "message": e.message} for e in self.errors],
        }
