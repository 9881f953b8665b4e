"""Upstream latency collaborator: the contract the engine consumes.

The collaborator answers "how long did the fan-out for this scenario take,
and how did each subsystem finish?". The engine only depends on the
LatencyCollaborator protocol; HttpSummaryCollaborator is the HTTP
implementation that talks to a cart-summary endpoint.

Response body expected from ``GET {base_url}/cart/summary/{scenario_key}``::

    {
        "total_time_ms": 412,
        "price_status": "SUCCESS",
        "stock_status": "TIMEOUT",
        "promotion_status": "FALLBACK",
        "service_errors": [{"service_key": "stock", "message": "deadline exceeded"}]
    }
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import requests

from fanoutviz.model import ServiceError

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT_S = 3.05
DEFAULT_READ_TIMEOUT_S = 10.0


class FanoutVizError(Exception):
    """Base class for fanoutviz errors."""


class CollaboratorUnavailable(FanoutVizError):
    """The collaborator could not produce a usable response.

    Covers transport failures, timeouts, non-success status codes and bodies
    that do not match the expected shape.
    """


@dataclass(frozen=True)
class CollaboratorResponse:
    """Logical shape of one collaborator answer.

    Attributes:
        total_latency_ms: Measured end-to-end latency of the fan-out.
        statuses: Raw status per subsystem key; a missing key or None means
            the subsystem did not report.
        errors: Diagnostic records reported alongside the result.
    """

    total_latency_ms: float
    statuses: Mapping[str, str | None] = field(default_factory=dict)
    errors: tuple[ServiceError, ...] = ()

    def __post_init__(self) -> None:
        if self.total_latency_ms < 0:
            raise ValueError(f"total_latency_ms must be >= 0, got {self.total_latency_ms}")

    def status_for(self, key: str) -> str | None:
        return self.statuses.get(key)

    @classmethod
    def fallback(cls, latency_ms: float, keys: Iterable[str]) -> CollaboratorResponse:
        """Synthesized response used when the collaborator is unavailable."""
        return cls(
            total_latency_ms=max(0.0, latency_ms),
            statuses=dict.fromkeys(keys, "ERROR"),
            errors=(ServiceError(service_key="API", message="Connection Error"),),
        )


@runtime_checkable
class LatencyCollaborator(Protocol):
    """Anything that can report a latency figure and per-subsystem statuses."""

    def fetch(self, scenario_key: str) -> CollaboratorResponse:
        """Fetch the result for ``scenario_key``.

        Raises:
            CollaboratorUnavailable: On any failure to obtain a usable result.
        """
        ...


def parse_summary(body: Any, keys: Iterable[str]) -> CollaboratorResponse:
    """Convert a cart-summary JSON body into a CollaboratorResponse.

    Raises:
        CollaboratorUnavailable: If the body is not an object or has no
            usable ``total_time_ms``.
    """
    if not isinstance(body, Mapping):
        raise CollaboratorUnavailable(f"Expected a JSON object, got {type(body).__name__}")

    raw_latency = body.get("total_time_ms")
    if isinstance(raw_latency, bool) or not isinstance(raw_latency, (int, float)):
        raise CollaboratorUnavailable(f"Missing or non-numeric total_time_ms: {raw_latency!r}")
    if raw_latency < 0:
        raise CollaboratorUnavailable(f"Negative total_time_ms: {raw_latency!r}")

    statuses: dict[str, str | None] = {}
    for key in keys:
        raw = body.get(f"{key}_status")
        statuses[key] = raw if isinstance(raw, str) else None

    errors = []
    for item in body.get("service_errors") or ():
        if isinstance(item, Mapping):
            errors.append(
                ServiceError(
                    service_key=str(item.get("service_key", "")),
                    message=str(item.get("message", "")),
                )
            )

    return CollaboratorResponse(
        total_latency_ms=float(raw_latency),
        statuses=statuses,
        errors=tuple(errors),
    )


class HttpSummaryCollaborator:
    """LatencyCollaborator backed by the cart-summary HTTP endpoint.

    Every request carries an explicit (connect, read) timeout so a stalled
    upstream turns into CollaboratorUnavailable instead of hanging the run.

    Args:
        base_url: Service root, e.g. ``https://quickship.example.com``.
        keys: Subsystem keys whose ``<key>_status`` fields should be read.
        connect_timeout_s: Socket connect timeout.
        read_timeout_s: Time to wait for the response body.
        session: Optional requests.Session to reuse connections.
    """

    def __init__(
        self,
        base_url: str,
        keys: Iterable[str],
        connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
        read_timeout_s: float = DEFAULT_READ_TIMEOUT_S,
        session: requests.Session | None = None,
    ):
        if not base_url:
            raise ValueError("base_url must not be empty")
        if connect_timeout_s <= 0 or read_timeout_s <= 0:
            raise ValueError(
                f"timeouts must be > 0, got connect={connect_timeout_s} read={read_timeout_s}"
            )
        self._base_url = base_url.rstrip("/")
        self._keys = tuple(keys)
        self._timeout = (connect_timeout_s, read_timeout_s)
        self._session = session or requests.Session()

    def url_for(self, scenario_key: str) -> str:
        return f"{self._base_url}/cart/summary/{scenario_key}"

    def fetch(self, scenario_key: str) -> CollaboratorResponse:
        url = self.url_for(scenario_key)
        logger.debug("GET %s", url)
        try:
            resp = self._session.get(url, timeout=self._timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as exc:
            raise CollaboratorUnavailable(f"GET {url} failed: {exc}") from exc
        except ValueError as exc:
            raise CollaboratorUnavailable(f"GET {url} returned invalid JSON: {exc}") from exc

        return parse_summary(body, self._keys)

    def close(self) -> None:
        self._session.close()
