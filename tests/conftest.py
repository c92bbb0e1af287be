from datetime import datetime, timezone

import pytest

from grindset.application.sessions.tracker import GrindTracker
from grindset.infrastructure.adapters.memory_store import InMemorySessionRepository
from grindset.infrastructure.clock import FixedClock

START = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def repo():
    return InMemorySessionRepository()


@pytest.fixture
def tracker(repo, clock):
    return GrindTracker("user-1", repo, clock)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config files
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "GRINDSET_BACKEND",
        "GRINDSET_USER_ID",
        "GRINDSET_DATA_DIR",
        "GRINDSET_REMOTE_URL",
        "GRINDSET_VERBOSE",
        "GRINDSET_LOG_DIR",
    ):
        monkeypatch.delenv(var, raising=False)
    return home
