"""Bounded log of recently completed runs."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import pandas as pd

from fanoutviz.model import ServiceError
from fanoutviz.status import Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunRecord:
    """Summary of one completed run."""

    trace_id: str
    scenario_key: str
    latency_ms: float
    outcomes: Mapping[str, Outcome]
    errors: tuple[ServiceError, ...] = ()
    from_cache: bool = False
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return all(outcome is Outcome.SUCCESS for outcome in self.outcomes.values())

    def to_dict(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "trace_id": self.trace_id,
            "scenario_key": self.scenario_key,
            "latency_ms": self.latency_ms,
            "from_cache": self.from_cache,
            "completed_at": self.completed_at,
            "errors": len(self.errors),
        }
        for key, outcome in self.outcomes.items():
            row[f"{key}_outcome"] = outcome.value
        return row


class RunHistory:
    """Most recent runs, newest first, capped at ``maxlen`` entries."""

    def __init__(self, maxlen: int = 10):
        if maxlen < 1:
            raise ValueError(f"maxlen must be >= 1, got {maxlen}")
        self._records: deque[RunRecord] = deque(maxlen=maxlen)

    def append(self, record: RunRecord) -> None:
        if len(self._records) == self._records.maxlen:
            logger.debug("History full; dropping %s", self._records[-1].trace_id)
        self._records.appendleft(record)

    def latest(self) -> RunRecord | None:
        return self._records[0] if self._records else None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RunRecord]:
        return iter(self._records)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per run, newest first, with a ``<key>_outcome`` column per subsystem."""
        return pd.DataFrame([record.to_dict() for record in self._records])
