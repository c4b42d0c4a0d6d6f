"""
Shared test fixtures for localbox tests.
"""
import pytest

from localbox.config.defaults import RuntimeConfig
from localbox.core.reaper import ExpiryReaper
from localbox.workspace.registry import WorkspaceRegistry


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def base_dir(tmp_path):
    return str(tmp_path / "sandboxes")


@pytest.fixture
def runtime_config(base_dir):
    return RuntimeConfig(base_dir=base_dir, poll_interval=0.05)


@pytest.fixture
def reaper(clock):
    return ExpiryReaper(clock=clock)


@pytest.fixture
def registry(base_dir, reaper):
    registry = WorkspaceRegistry(base_dir=base_dir, reaper=reaper)
    registry.initialize()
    return registry


@pytest.fixture
def sample_files():
    return [
        {"path": "a.txt", "content": "hello"},
        {"path": "src/app.py", "content": "print('hi')\n"},
    ]
