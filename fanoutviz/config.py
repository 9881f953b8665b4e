"""Engine configuration and the default subsystem set.

Tuning constants live in EngineConfig rather than in the engine so they can be
changed per deployment. ``EngineConfig.from_env()`` reads overrides from
``FANOUTVIZ_*`` environment variables:

    FANOUTVIZ_STEPS                 Ticks per run (int)
    FANOUTVIZ_DRAIN_DELAY_MS        Base delay before the view clears (ms)
    FANOUTVIZ_MIN_TICK_INTERVAL_MS  Lower bound on the tick interval (ms)
    FANOUTVIZ_TRIGGER_PERIOD_MS     Auto trigger period (ms)
    FANOUTVIZ_TRIGGER_THRESHOLD     Auto trigger fires when a draw exceeds this
    FANOUTVIZ_TIMEOUT_PROBABILITY   Chance of the forced-timeout scenario
    FANOUTVIZ_BASE_URL              Upstream service root
    FANOUTVIZ_CONNECT_TIMEOUT_S     HTTP connect timeout (s)
    FANOUTVIZ_READ_TIMEOUT_S        HTTP read timeout (s)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from fanoutviz.collaborator import DEFAULT_CONNECT_TIMEOUT_S, DEFAULT_READ_TIMEOUT_S
from fanoutviz.core.temporal import Duration
from fanoutviz.model import SubsystemDescriptor

logger = logging.getLogger(__name__)

ENV_PREFIX = "FANOUTVIZ_"

DEFAULT_SUBSYSTEMS: tuple[SubsystemDescriptor, ...] = (
    SubsystemDescriptor(name="Price Service", key="price", mock_duration_ms=200, color_tag="blue"),
    SubsystemDescriptor(name="Inventory Service", key="stock", mock_duration_ms=400, color_tag="green"),
    SubsystemDescriptor(name="Promotion Service", key="promotion", mock_duration_ms=50, color_tag="purple"),
)


@dataclass(frozen=True)
class EngineConfig:
    """Tuning constants for the engine, auto trigger and HTTP collaborator.

    Args:
        steps: Ticks per run.
        drain_delay: Base delay between the last tick and clearing the view;
            the run's latency is added on top.
        min_tick_interval: Floor for the tick interval when latency is ~0.
        trigger_period: Auto trigger period.
        trigger_threshold: Auto trigger starts a run when a draw exceeds this.
        forced_timeout_probability: Chance a run targets the timeout scenario.
        base_url: Upstream service root.
        connect_timeout_s: HTTP connect timeout.
        read_timeout_s: HTTP read timeout.

    Raises:
        ValueError: If any value is out of range.
    """

    steps: int = 40
    drain_delay: Duration = Duration.from_ms(2000)
    min_tick_interval: Duration = Duration.from_ms(1)
    trigger_period: Duration = Duration.from_ms(4000)
    trigger_threshold: float = 0.6
    forced_timeout_probability: float = 0.2
    base_url: str = "https://go-quickship.onrender.com"
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S
    read_timeout_s: float = DEFAULT_READ_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.steps < 1:
            raise ValueError(f"steps must be >= 1, got {self.steps}")
        if self.drain_delay < Duration.ZERO:
            raise ValueError(f"drain_delay must be >= 0, got {self.drain_delay!r}")
        if self.min_tick_interval <= Duration.ZERO:
            raise ValueError(f"min_tick_interval must be > 0, got {self.min_tick_interval!r}")
        if self.trigger_period <= Duration.ZERO:
            raise ValueError(f"trigger_period must be > 0, got {self.trigger_period!r}")
        if not 0.0 <= self.trigger_threshold <= 1.0:
            raise ValueError(f"trigger_threshold must be in [0, 1], got {self.trigger_threshold}")
        if not 0.0 <= self.forced_timeout_probability <= 1.0:
            raise ValueError(
                f"forced_timeout_probability must be in [0, 1], got {self.forced_timeout_probability}"
            )
        if self.connect_timeout_s <= 0 or self.read_timeout_s <= 0:
            raise ValueError("HTTP timeouts must be > 0")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a config from ``FANOUTVIZ_*`` variables; unset ones keep defaults.

        Raises:
            ValueError: If a variable is set but cannot be parsed or is out of range.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}

        def read(name: str, convert):
            raw = env.get(ENV_PREFIX + name, "").strip()
            if not raw:
                return None
            try:
                return convert(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid {ENV_PREFIX}{name}={raw!r}: {exc}") from exc

        ms = lambda raw: Duration.from_ms(float(raw))  # noqa: E731
        for field_name, env_name, convert in (
            ("steps", "STEPS", int),
            ("drain_delay", "DRAIN_DELAY_MS", ms),
            ("min_tick_interval", "MIN_TICK_INTERVAL_MS", ms),
            ("trigger_period", "TRIGGER_PERIOD_MS", ms),
            ("trigger_threshold", "TRIGGER_THRESHOLD", float),
            ("forced_timeout_probability", "TIMEOUT_PROBABILITY", float),
            ("base_url", "BASE_URL", str),
            ("connect_timeout_s", "CONNECT_TIMEOUT_S", float),
            ("read_timeout_s", "READ_TIMEOUT_S", float),
        ):
            value = read(env_name, convert)
            if value is not None:
                overrides[field_name] = value

        if overrides:
            logger.debug("EngineConfig overrides from environment: %s", sorted(overrides))
        return cls(**overrides)
