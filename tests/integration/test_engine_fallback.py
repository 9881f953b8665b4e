"""Collaborator failures degrade to the fallback path instead of aborting."""

from __future__ import annotations

import asyncio

import pytest

from fanoutviz.collaborator import CollaboratorUnavailable
from fanoutviz.core.scheduler import VirtualScheduler
from fanoutviz.core.temporal import Duration
from fanoutviz.engine import SimulationEngine
from fanoutviz.metrics import MetricsAggregator
from fanoutviz.model import EngineState, RunState, ServiceError
from fanoutviz.scenarios import FixedScenario
from fanoutviz.status import Outcome


class CountingAggregator(MetricsAggregator):
    def __init__(self):
        super().__init__()
        self.recorded: list[float] = []

    def record(self, latency_ms: float) -> None:
        self.recorded.append(latency_ms)
        super().record(latency_ms)


def _run(subsystems, collaborator, scheduler, aggregator):
    engine = SimulationEngine(
        subsystems=subsystems,
        collaborator=collaborator,
        scheduler=scheduler,
        aggregator=aggregator,
        scenario_picker=FixedScenario("PRODUCT-TIMEOUT-401"),
    )
    views = []
    engine.subscribe(views.append)
    assert engine.start()
    scheduler.run_until_idle()
    return engine, views


def test_unavailable_collaborator_marks_every_slot_failed(subsystems, failing_collaborator, scheduler):
    aggregator = CountingAggregator()
    engine, views = _run(subsystems, failing_collaborator, scheduler, aggregator)

    final = views[-2]
    assert all(s.final_outcome is Outcome.FAILED for s in final.services)
    assert final.errors == (ServiceError("API", "Connection Error"),)
    assert engine.state is EngineState.IDLE


def test_fallback_latency_is_measured_elapsed_time(subsystems, failing_collaborator, scheduler):
    aggregator = CountingAggregator()
    _, views = _run(subsystems, failing_collaborator, scheduler, aggregator)

    # The stub spends 120ms of virtual time before failing
    assert views[0].final_latency_ms == pytest.approx(120.0, abs=1.0)
    assert aggregator.recorded == [pytest.approx(120.0, abs=1.0)]
    assert aggregator.metrics.total_requests == 1


def test_fallback_run_still_animates_to_completion(subsystems, failing_collaborator, scheduler):
    _, views = _run(subsystems, failing_collaborator, scheduler, CountingAggregator())

    snapshots = views[:-1]
    assert len(snapshots) == 41
    assert snapshots[-1].total_progress == 100.0
    # 120ms elapsed: promotion (50ms) done, price (200ms) at 60%
    assert snapshots[-1].slot("promotion").run_state is RunState.COMPLETE
    assert snapshots[-1].slot("price").progress == pytest.approx(60.0)
    assert views[-1] is None


def test_no_retry_on_failure(subsystems, failing_collaborator, scheduler):
    _run(subsystems, failing_collaborator, scheduler, CountingAggregator())
    assert failing_collaborator.calls == ["PRODUCT-TIMEOUT-401"]


def test_unexpected_collaborator_exception_also_falls_back(subsystems, make_collaborator, scheduler):
    collaborator = make_collaborator(
        error=KeyError("total_time_ms"), scheduler=scheduler, delay=Duration.from_ms(30)
    )
    aggregator = CountingAggregator()
    engine, views = _run(subsystems, collaborator, scheduler, aggregator)

    assert all(s.final_outcome is Outcome.FAILED for s in views[0].services)
    assert aggregator.recorded == [pytest.approx(30.0, abs=1.0)]
    assert engine.is_idle


def test_fallback_is_logged_as_warning(subsystems, failing_collaborator, scheduler, caplog):
    with caplog.at_level("WARNING", logger="fanoutviz"):
        _run(subsystems, failing_collaborator, scheduler, CountingAggregator())

    assert any(
        r.levelname == "WARNING" and "collaborator unavailable" in r.getMessage()
        for r in caplog.records
    )


def test_start_never_raises_on_failure(subsystems, scheduler):
    class ExplodingCollaborator:
        def fetch(self, scenario_key):
            raise CollaboratorUnavailable("no route to host")

    engine = SimulationEngine(subsystems=subsystems, collaborator=ExplodingCollaborator(), scheduler=scheduler)

    assert engine.start() is True
    scheduler.run_until_idle()
    assert engine.metrics.total_requests == 1
    assert engine.history.latest().outcomes == {s.key: Outcome.FAILED for s in subsystems}


class RefusingScheduler(VirtualScheduler):
    """Raises from submit(), like an executor that has been shut down."""

    def submit(self, fn, callback):
        raise RuntimeError("cannot schedule new futures after shutdown")


class CancellingScheduler(VirtualScheduler):
    """Delivers every submitted call as a cancelled future."""

    class _Cancelled:
        def result(self):
            raise asyncio.CancelledError()

    def submit(self, fn, callback):
        self.call_later(Duration.ZERO, lambda: callback(self._Cancelled()), "dispatch.cancelled")


def test_failed_submit_falls_back_and_returns_to_idle(subsystems, success_collaborator):
    scheduler = RefusingScheduler()
    aggregator = CountingAggregator()
    engine, views = _run(subsystems, success_collaborator, scheduler, aggregator)

    assert success_collaborator.calls == []
    assert all(s.final_outcome is Outcome.FAILED for s in views[0].services)
    assert aggregator.recorded == [0.0]
    assert engine.is_idle
    assert engine.metrics.active_requests == 0

    # The engine is not wedged: a second run is accepted
    assert engine.start()


def test_cancelled_dispatch_falls_back(subsystems, success_collaborator):
    scheduler = CancellingScheduler()
    engine, views = _run(subsystems, success_collaborator, scheduler, CountingAggregator())

    assert views[0].errors == (ServiceError("API", "Connection Error"),)
    assert views[-1] is None
    assert engine.is_idle
    assert engine.metrics.total_requests == 1


@pytest.mark.parametrize("returned", [None, {"total_time_ms": 120}, 412.0])
def test_non_response_return_value_falls_back(subsystems, scheduler, returned):
    class WrongTypeCollaborator:
        def fetch(self, scenario_key):
            return returned

    aggregator = CountingAggregator()
    engine, views = _run(subsystems, WrongTypeCollaborator(), scheduler, aggregator)

    assert all(s.final_outcome is Outcome.FAILED for s in views[0].services)
    assert aggregator.recorded == [0.0]
    assert engine.is_idle
    assert engine.metrics.active_requests == 0
