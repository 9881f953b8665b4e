"""Engine and auto trigger on a real asyncio loop with wall-clock timers."""

from __future__ import annotations

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor

from fanoutviz.collaborator import CollaboratorResponse, CollaboratorUnavailable
from fanoutviz.config import EngineConfig
from fanoutviz.core.scheduler import AsyncioScheduler
from fanoutviz.core.temporal import Duration
from fanoutviz.engine import SimulationEngine
from fanoutviz.model import RunState
from fanoutviz.scenarios import FixedScenario
from fanoutviz.status import Outcome
from fanoutviz.trigger import AutoTriggerScheduler

FAST = EngineConfig(steps=8, drain_delay=Duration.from_ms(20))


class SlowCollaborator:
    """Blocks like a network call, then answers or fails."""

    def __init__(self, sleep_s: float, response: CollaboratorResponse | None = None):
        self.sleep_s = sleep_s
        self.response = response

    def fetch(self, scenario_key: str) -> CollaboratorResponse:
        time.sleep(self.sleep_s)
        if self.response is None:
            raise CollaboratorUnavailable("connection reset")
        return self.response


async def _run_once(engine: SimulationEngine, timeout_s: float = 5.0) -> list:
    views = []
    done = asyncio.Event()

    def on_view(view):
        views.append(view)
        if view is None:
            done.set()

    engine.subscribe(on_view)
    assert engine.start()
    await asyncio.wait_for(done.wait(), timeout=timeout_s)
    return views


def test_engine_runs_on_asyncio_loop(subsystems):
    response = CollaboratorResponse(
        total_latency_ms=80.0,
        statuses={"price": "success", "stock": "success", "promotion": "success"},
    )

    async def main():
        scheduler = AsyncioScheduler()
        engine = SimulationEngine(
            subsystems=subsystems,
            collaborator=SlowCollaborator(0.01, response),
            scheduler=scheduler,
            config=FAST,
            scenario_picker=FixedScenario(),
        )
        views = await _run_once(engine)
        return engine, views

    engine, views = asyncio.run(main())

    snapshots = views[:-1]
    assert [v.step for v in snapshots] == list(range(9))
    assert snapshots[-1].total_progress == 100.0
    assert all(s.run_state is RunState.COMPLETE for s in snapshots[-1].services)
    assert engine.metrics.total_requests == 1
    assert engine.is_idle


def test_fallback_latency_tracks_wall_clock(subsystems):
    async def main():
        scheduler = AsyncioScheduler()
        engine = SimulationEngine(
            subsystems=subsystems,
            collaborator=SlowCollaborator(0.05),
            scheduler=scheduler,
            config=FAST,
        )
        return await _run_once(engine)

    views = asyncio.run(main())

    latency = views[0].final_latency_ms
    # Slept 50ms in the executor; allow for thread and loop scheduling jitter
    assert 45.0 <= latency < 1000.0
    assert all(s.final_outcome is Outcome.FAILED for s in views[0].services)


def test_auto_trigger_on_asyncio_loop(subsystems):
    response = CollaboratorResponse(total_latency_ms=10.0, statuses={"price": "success"})

    class AlwaysFire:
        def random(self):
            return 1.0

    async def main():
        scheduler = AsyncioScheduler()
        engine = SimulationEngine(
            subsystems=subsystems,
            collaborator=SlowCollaborator(0.0, response),
            scheduler=scheduler,
            config=FAST,
        )
        with AutoTriggerScheduler(engine, scheduler, period=Duration.from_ms(20), rng=AlwaysFire()) as trigger:
            await asyncio.sleep(0.5)
        windows_at_stop = trigger.windows
        await asyncio.sleep(0.1)
        return engine, trigger, windows_at_stop

    engine, trigger, windows_at_stop = asyncio.run(main())

    assert trigger.starts >= 1
    assert engine.metrics.total_requests >= 1
    assert not trigger.running
    assert trigger.windows == windows_at_stop


def test_shut_down_executor_does_not_wedge_engine(subsystems):
    response = CollaboratorResponse(total_latency_ms=10.0, statuses={"price": "success"})
    executor = ThreadPoolExecutor(max_workers=1)
    executor.shutdown()

    async def main():
        scheduler = AsyncioScheduler(executor=executor)
        engine = SimulationEngine(
            subsystems=subsystems,
            collaborator=SlowCollaborator(0.0, response),
            scheduler=scheduler,
            config=FAST,
        )
        views = await _run_once(engine)
        return engine, views

    engine, views = asyncio.run(main())

    assert all(s.final_outcome is Outcome.FAILED for s in views[0].services)
    assert views[-1] is None
    assert engine.is_idle
    assert engine.metrics.active_requests == 0
    assert engine.metrics.total_requests == 1
