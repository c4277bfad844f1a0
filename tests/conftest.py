"""Pytest configuration and shared fixtures."""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from grid_car.env import Action, CarGridEnv  # noqa: E402


# forward, right, 6x forward, left, 8x forward
FINISH_ROUTE = (
    [Action.MOVE_FORWARD, Action.TURN_RIGHT]
    + [Action.MOVE_FORWARD] * 6
    + [Action.TURN_LEFT]
    + [Action.MOVE_FORWARD] * 8
)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def env():
    """Fresh environment on the authored track."""
    e = CarGridEnv()
    yield e
    e.close()


@pytest.fixture
def finish_route():
    return list(FINISH_ROUTE)


class RecordingView:
    """Rendering sink that remembers every pose it receives."""

    def __init__(self):
        self.calls = []

    def set_car_at_position(self, position, direction):
        self.calls.append((position, direction))


@pytest.fixture
def recording_view():
    return RecordingView()
