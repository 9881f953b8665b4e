"""fanoutviz: live visualization engine for fan-out/fan-in requests.

A SimulationEngine takes the real end-to-end latency of a fanned-out request,
synthesizes a per-subsystem timeline consistent with it, and publishes
immutable progress snapshots on a fixed animation clock.
"""

import logging

from fanoutviz.collaborator import (
    CollaboratorResponse,
    CollaboratorUnavailable,
    FanoutVizError,
    HttpSummaryCollaborator,
    LatencyCollaborator,
)
from fanoutviz.comparison import FanoutComparison, plot_comparison
from fanoutviz.config import DEFAULT_SUBSYSTEMS, EngineConfig
from fanoutviz.core import (
    AsyncioScheduler,
    Duration,
    Instant,
    Scheduler,
    TimerEvent,
    VirtualScheduler,
)
from fanoutviz.engine import SimulationEngine
from fanoutviz.history import RunHistory, RunRecord
from fanoutviz.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
)
from fanoutviz.metrics import Metrics, MetricsAggregator
from fanoutviz.model import (
    EngineState,
    RunState,
    ServiceError,
    ServiceSlot,
    SimulationView,
    SubsystemDescriptor,
)
from fanoutviz.scenarios import FixedScenario, ScenarioPicker
from fanoutviz.status import Outcome, classify
from fanoutviz.trigger import AutoTriggerScheduler

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Engine
    "SimulationEngine",
    "AutoTriggerScheduler",
    "EngineConfig",
    "DEFAULT_SUBSYSTEMS",
    # Data model
    "EngineState",
    "RunState",
    "ServiceError",
    "ServiceSlot",
    "SimulationView",
    "SubsystemDescriptor",
    "Outcome",
    "classify",
    # Metrics and history
    "Metrics",
    "MetricsAggregator",
    "RunHistory",
    "RunRecord",
    "FanoutComparison",
    "plot_comparison",
    # Collaborator
    "LatencyCollaborator",
    "CollaboratorResponse",
    "CollaboratorUnavailable",
    "FanoutVizError",
    "HttpSummaryCollaborator",
    "ScenarioPicker",
    "FixedScenario",
    # Scheduling
    "Scheduler",
    "VirtualScheduler",
    "AsyncioScheduler",
    "TimerEvent",
    "Instant",
    "Duration",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
]
