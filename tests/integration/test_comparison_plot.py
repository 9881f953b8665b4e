"""Render the sequential vs concurrent chart and a run-history CSV.

Output lands under test_output/ for manual inspection.
"""

from __future__ import annotations

import pytest

from fanoutviz.comparison import FanoutComparison, plot_comparison
from fanoutviz.engine import SimulationEngine
from fanoutviz.scenarios import FixedScenario


def test_plot_default_services(subsystems, test_output_dir, caplog):
    pytest.importorskip("matplotlib")
    caplog.set_level("DEBUG", logger="fanoutviz.comparison")

    cmp = FanoutComparison.from_descriptors(subsystems)
    path = plot_comparison(cmp, test_output_dir / "fanout_comparison.png")

    assert path.exists()
    assert path.stat().st_size > 0
    assert any(
        r.name == "fanoutviz.comparison" and str(path) in r.getMessage() for r in caplog.records
    )
    (test_output_dir / "summary.txt").write_text(str(cmp))


def test_history_export_after_runs(subsystems, success_collaborator, scheduler, test_output_dir):
    engine = SimulationEngine(
        subsystems=subsystems,
        collaborator=success_collaborator,
        scheduler=scheduler,
        scenario_picker=FixedScenario(),
    )
    for _ in range(3):
        assert engine.start()
        scheduler.run_until_idle()

    df = engine.history.to_dataframe()
    df.to_csv(test_output_dir / "history.csv", index=False)

    assert len(df) == 3
    assert (df["latency_ms"] == 400.0).all()
    assert set(df["stock_outcome"]) == {"success"}
