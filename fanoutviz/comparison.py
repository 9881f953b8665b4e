"""Sequential vs concurrent execution comparison for a set of subsystems.

Calling the subsystems one after another costs the sum of their durations;
fanning out costs only the slowest one. FanoutComparison computes both and
the savings, and ``plot_comparison`` draws them side by side.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fanoutviz.model import SubsystemDescriptor

logger = logging.getLogger(__name__)

_COLORS = {
    "blue": "#3b82f6",
    "green": "#22c55e",
    "purple": "#a855f7",
    "orange": "#f97316",
    "red": "#ef4444",
    "yellow": "#eab308",
}


@dataclass(frozen=True)
class FanoutComparison:
    """Cost of running the same subsystems sequentially vs concurrently."""

    subsystems: tuple[SubsystemDescriptor, ...]
    sequential_ms: int
    concurrent_ms: int

    @classmethod
    def from_descriptors(cls, subsystems: Sequence[SubsystemDescriptor]) -> FanoutComparison:
        """Raises ValueError if ``subsystems`` is empty."""
        if not subsystems:
            raise ValueError("At least one subsystem is required")
        durations = [s.mock_duration_ms for s in subsystems]
        return cls(
            subsystems=tuple(subsystems),
            sequential_ms=sum(durations),
            concurrent_ms=max(durations),
        )

    @property
    def saved_ms(self) -> int:
        return self.sequential_ms - self.concurrent_ms

    @property
    def percent_faster(self) -> float:
        return self.saved_ms / self.sequential_ms * 100.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequential_ms": self.sequential_ms,
            "concurrent_ms": self.concurrent_ms,
            "saved_ms": self.saved_ms,
            "percent_faster": self.percent_faster,
        }

    def __str__(self) -> str:
        parts = " + ".join(f"{s.mock_duration_ms}ms" for s in self.subsystems)
        return (
            f"Sequential: {self.sequential_ms}ms ({parts})\n"
            f"Concurrent: ~{self.concurrent_ms}ms (max)\n"
            f"{self.percent_faster:.1f}% faster, {self.saved_ms}ms saved"
        )


def plot_comparison(comparison: FanoutComparison, path: str | Path) -> Path:
    """Render a two-panel timeline chart of ``comparison`` to ``path``.

    The left panel stacks subsystems end to end; the right panel starts them
    all at zero.

    Returns:
        The path the image was written to.
    """
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    names = [s.name for s in comparison.subsystems]
    colors = [_COLORS.get(s.color_tag, "#64748b") for s in comparison.subsystems]
    durations = [s.mock_duration_ms for s in comparison.subsystems]
    starts = [sum(durations[:i]) for i in range(len(durations))]

    fig, (ax_seq, ax_con) = plt.subplots(1, 2, figsize=(12, 3.5), sharey=True)

    ax_seq.barh(names, durations, left=starts, color=colors)
    ax_seq.set_title(f"Sequential: {comparison.sequential_ms}ms")
    ax_seq.set_xlabel("Time (ms)")
    ax_seq.set_xlim(0, comparison.sequential_ms)
    ax_seq.invert_yaxis()

    ax_con.barh(names, durations, color=colors)
    ax_con.axvline(comparison.concurrent_ms, color="black", linestyle="--", linewidth=1)
    ax_con.set_title(
        f"Concurrent: ~{comparison.concurrent_ms}ms "
        f"({comparison.percent_faster:.1f}% faster, {comparison.saved_ms}ms saved)"
    )
    ax_con.set_xlabel("Time (ms)")
    ax_con.set_xlim(0, comparison.sequential_ms)

    fig.tight_layout()
    fig.savefig(path, dpi=100)
    plt.close(fig)
    logger.debug("Comparison chart written to %s", path)
    return path
