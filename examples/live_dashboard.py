"""Terminal rendition of the fan-out/fan-in dashboard.

Runs the engine on a real asyncio loop with the auto trigger enabled, so a
new cart-summary request goes out roughly every few seconds. Each published
snapshot is drawn as one progress bar per subsystem.

## What happens per run

```
    trigger window (every 4s, fires when idle and rng > 0.6)
        │
        ▼
    GET {base_url}/cart/summary/{scenario}   ── one real request
        │                                       (or a local stand-in with --offline)
        ▼
    ┌───────────────────────────────────────────────┐
    │ Price Service      ██████████████████  100%   │  200ms
    │ Inventory Service  █████████░░░░░░░░░   50%   │  400ms
    │ Promotion Service  ██████████████████  100%   │   50ms
    └───────────────────────────────────────────────┘
        40 ticks over the measured latency, then a drain pause
```

Usage:
    python examples/live_dashboard.py --offline --duration 20
    python examples/live_dashboard.py --base-url http://localhost:8080
"""

from __future__ import annotations

import asyncio
import random
import time
from pathlib import Path

from fanoutviz import (
    DEFAULT_SUBSYSTEMS,
    AsyncioScheduler,
    AutoTriggerScheduler,
    CollaboratorResponse,
    CollaboratorUnavailable,
    EngineConfig,
    FanoutComparison,
    HttpSummaryCollaborator,
    SimulationEngine,
    SimulationView,
    enable_console_logging,
    plot_comparison,
)
from fanoutviz.scenarios import FORCED_TIMEOUT_SCENARIO

BAR_WIDTH = 30


# =============================================================================
# Offline collaborator
# =============================================================================


class OfflineCollaborator:
    """Sleeps for a plausible fan-out latency instead of calling the network.

    The timeout scenario fails the stock lookup and occasionally the whole
    request, which exercises the engine's fallback path.
    """

    def __init__(self, seed: int | None = None):
        self._rng = random.Random(seed)

    def fetch(self, scenario_key: str) -> CollaboratorResponse:
        latency_ms = max(s.mock_duration_ms for s in DEFAULT_SUBSYSTEMS) + self._rng.uniform(5, 60)
        time.sleep(latency_ms / 1000)

        statuses = {s.key: "SUCCESS" for s in DEFAULT_SUBSYSTEMS}
        if scenario_key == FORCED_TIMEOUT_SCENARIO:
            if self._rng.random() < 0.3:
                raise CollaboratorUnavailable("simulated connection reset")
            statuses["stock"] = "TIMEOUT"
        return CollaboratorResponse(total_latency_ms=latency_ms, statuses=statuses)


# =============================================================================
# Rendering
# =============================================================================


def render(view: SimulationView | None) -> None:
    if view is None:
        print("  (idle)")
        return
    if view.step not in (0, 10, 20, 30, 40):
        return

    print(f"\n{view.trace_id}  {view.scenario_key}  {view.final_latency_ms:.0f}ms  "
          f"total {view.total_progress:.0f}%")
    for slot in view.services:
        filled = int(slot.progress / 100 * BAR_WIDTH)
        bar = "█" * filled + "░" * (BAR_WIDTH - filled)
        print(f"  {slot.name:<18} {bar} {slot.progress:5.1f}%  {slot.final_outcome.value}")
    for error in view.errors:
        print(f"  ! {error.service_key}: {error.message}")


# =============================================================================
# Main
# =============================================================================


async def run_dashboard(duration_s: float, collaborator, config: EngineConfig) -> SimulationEngine:
    scheduler = AsyncioScheduler()
    engine = SimulationEngine(
        subsystems=DEFAULT_SUBSYSTEMS,
        collaborator=collaborator,
        scheduler=scheduler,
        config=config,
    )
    engine.subscribe(render)

    with AutoTriggerScheduler(engine, scheduler, config=config):
        engine.start()
        await asyncio.sleep(duration_s)
    return engine


def print_summary(engine: SimulationEngine) -> None:
    metrics = engine.metrics
    print("\n" + "=" * 70)
    print(f"Requests: {metrics.total_requests}   Avg latency: {metrics.avg_latency_ms:.1f}ms")
    print("=" * 70)
    for record in engine.history:
        status = "ok" if record.succeeded else "degraded"
        print(f"  {record.trace_id}  {record.scenario_key:<22} {record.latency_ms:7.1f}ms  {status}")
    print()
    print(FanoutComparison.from_descriptors(engine.subsystems))


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Live fan-out/fan-in dashboard")
    parser.add_argument("--duration", type=float, default=30.0, help="How long to run (s)")
    parser.add_argument("--base-url", type=str, default=None, help="Cart summary service base URL")
    parser.add_argument("--offline", action="store_true", help="Use a local stand-in collaborator")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the offline collaborator")
    parser.add_argument("--output", type=str, default="output/live_dashboard", help="Output directory")
    parser.add_argument("--log-level", type=str, default="INFO", help="fanoutviz log level")
    args = parser.parse_args()

    enable_console_logging(level=args.log_level)
    config = EngineConfig.from_env()

    if args.offline:
        collaborator = OfflineCollaborator(seed=args.seed)
    else:
        collaborator = HttpSummaryCollaborator(
            base_url=args.base_url or config.base_url,
            keys=[s.key for s in DEFAULT_SUBSYSTEMS],
            connect_timeout_s=config.connect_timeout_s,
            read_timeout_s=config.read_timeout_s,
        )

    try:
        engine = asyncio.run(run_dashboard(args.duration, collaborator, config))
    finally:
        if isinstance(collaborator, HttpSummaryCollaborator):
            collaborator.close()

    print_summary(engine)

    output_dir = Path(args.output)
    plot_comparison(FanoutComparison.from_descriptors(engine.subsystems), output_dir / "comparison.png")
    if len(engine.history):
        engine.history.to_dataframe().to_csv(output_dir / "history.csv", index=False)
    print(f"\nOutput saved to: {output_dir.absolute()}")
