"""Normalization of upstream status strings into canonical outcomes.

Classification must never block the animation, so ``classify`` is total:
anything it does not recognize becomes ``Outcome.UNKNOWN``.
"""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Canonical terminal classification of a subsystem's response."""

    SUCCESS = "success"
    FAILED = "failed"
    FALLBACK = "fallback"
    UNKNOWN = "unknown"


_OUTCOME_TABLE: dict[str, Outcome] = {
    "success": Outcome.SUCCESS,
    "timeout": Outcome.FAILED,
    "error": Outcome.FAILED,
    "fallback": Outcome.FALLBACK,
}


def classify(raw_status: str | None) -> Outcome:
    """Map a raw upstream status to an Outcome.

    Args:
        raw_status: Status string as reported upstream, in any case. None and
            the empty string mean "not reported".

    Returns:
        The matching Outcome, or ``Outcome.UNKNOWN`` for absent or
        unrecognized input.
    """
    if not raw_status or not isinstance(raw_status, str):
        return Outcome.UNKNOWN

    outcome = _OUTCOME_TABLE.get(raw_status.lower())
    if outcome is None:
        logger.debug("Unrecognized status %r classified as unknown", raw_status)
        return Outcome.UNKNOWN
    return outcome
