"""Choice of which scenario a run dispatches for."""

from __future__ import annotations

import random

NORMAL_SCENARIO = "PRODUCT-SUCCESS-123"
FORCED_TIMEOUT_SCENARIO = "PRODUCT-TIMEOUT-401"


class ScenarioPicker:
    """Draws the scenario for one run: usually normal, sometimes a forced timeout.

    The engine calls ``pick()`` exactly once when a run enters dispatching.

    Args:
        forced_timeout_probability: Chance in [0, 1] of the forced-timeout scenario.
        normal_key: Scenario key for the normal path.
        timeout_key: Scenario key that makes the upstream time out a subsystem.
        rng: Random source; pass a seeded ``random.Random`` for reproducibility.
    """

    def __init__(
        self,
        forced_timeout_probability: float = 0.2,
        normal_key: str = NORMAL_SCENARIO,
        timeout_key: str = FORCED_TIMEOUT_SCENARIO,
        rng: random.Random | None = None,
    ):
        if not 0.0 <= forced_timeout_probability <= 1.0:
            raise ValueError(
                f"forced_timeout_probability must be in [0, 1], got {forced_timeout_probability}"
            )
        self.forced_timeout_probability = forced_timeout_probability
        self.normal_key = normal_key
        self.timeout_key = timeout_key
        self._rng = rng or random.Random()

    def pick(self) -> str:
        if self._rng.random() < self.forced_timeout_probability:
            return self.timeout_key
        return self.normal_key


class FixedScenario:
    """Always dispatches the same scenario key."""

    def __init__(self, key: str = NORMAL_SCENARIO):
        self.key = key

    def pick(self) -> str:
        return self.key
