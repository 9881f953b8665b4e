"""
Shared pytest fixtures for fanoutviz tests.
"""

import logging
import random
from pathlib import Path

import pytest

from fanoutviz.collaborator import CollaboratorResponse, CollaboratorUnavailable
from fanoutviz.core.scheduler import VirtualScheduler
from fanoutviz.core.temporal import Duration
from fanoutviz.model import SubsystemDescriptor


class StubCollaborator:
    """Returns canned responses and counts calls.

    If ``delay`` is set and a VirtualScheduler is attached, each fetch first
    elapses that much virtual time, as a slow network call would.
    """

    def __init__(
        self,
        response: CollaboratorResponse | None = None,
        error: Exception | None = None,
        scheduler: VirtualScheduler | None = None,
        delay: Duration = Duration.ZERO,
    ):
        self.response = response
        self.error = error
        self.scheduler = scheduler
        self.delay = delay
        self.calls: list[str] = []

    def fetch(self, scenario_key: str) -> CollaboratorResponse:
        self.calls.append(scenario_key)
        if self.scheduler is not None:
            self.scheduler.elapse(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def subsystems() -> tuple[SubsystemDescriptor, ...]:
    return (
        SubsystemDescriptor(name="Price Service", key="price", mock_duration_ms=200, color_tag="blue"),
        SubsystemDescriptor(name="Inventory Service", key="stock", mock_duration_ms=400, color_tag="green"),
        SubsystemDescriptor(name="Promotion Service", key="promotion", mock_duration_ms=50, color_tag="purple"),
    )


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def all_success() -> CollaboratorResponse:
    return CollaboratorResponse(
        total_latency_ms=400.0,
        statuses={"price": "SUCCESS", "stock": "SUCCESS", "promotion": "SUCCESS"},
    )


@pytest.fixture
def make_collaborator():
    """Factory for StubCollaborator instances."""
    return StubCollaborator


@pytest.fixture
def success_collaborator(all_success) -> StubCollaborator:
    return StubCollaborator(response=all_success)


@pytest.fixture
def failing_collaborator(scheduler) -> StubCollaborator:
    return StubCollaborator(
        error=CollaboratorUnavailable("connection refused"),
        scheduler=scheduler,
        delay=Duration.from_ms(120),
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture(scope="session")
def test_output_root() -> Path:
    """
    Returns the root test_output directory. Created once per test session.
    Files here persist after tests complete for easy access.
    """
    output_dir = Path(__file__).parent.parent / "test_output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


@pytest.fixture
def test_output_dir(request, test_output_root) -> Path:
    """
    Returns a directory for the current test to write output files.
    Directory structure: test_output/<module_name>/<test_name>/
    """
    module_name = request.module.__name__.split(".")[-1]
    test_name = request.node.name

    test_dir = test_output_root / module_name / test_name
    test_dir.mkdir(parents=True, exist_ok=True)
    return test_dir


@pytest.fixture(autouse=True)
def reset_fanoutviz_logging():
    """Reset the fanoutviz logger before and after each test.

    Removes every handler except a NullHandler and resets the level to
    NOTSET so configuration from one test does not leak into another.
    """
    logger = logging.getLogger("fanoutviz")

    def reset() -> None:
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            if not isinstance(handler, logging.NullHandler):
                handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)

    reset()
    yield
    reset()
