"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fluency.adaptive.config import DEFAULT_CONFIG  # noqa: E402
from fluency.adaptive.selector import AdaptiveSelector  # noqa: E402
from fluency.delivery.state_store import MemoryStore  # noqa: E402

HOUR_MS = 3_600_000


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: float = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms

    def advance_hours(self, hours: float) -> None:
        self.now += hours * HOUR_MS


class FakeHandle:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """
    Deterministic stand-in for asyncio's call_later.

    Timers fire only when ``advance`` moves the shared FakeClock past
    their due time, in due-time order.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.handles: list[FakeHandle] = []

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(self.clock.now + delay * 1000, callback, args)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, ms: float) -> None:
        target = self.clock.now + ms
        while True:
            due = [h for h in self.pending if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            handle.cancelled = True
            self.clock.now = max(self.clock.now, handle.when)
            handle.callback(*handle.args)
        self.clock.now = target


class SequenceRng:
    """Returns the given draws in order, repeating the last one."""

    def __init__(self, *values: float):
        self.values = list(values) or [0.0]
        self.index = 0

    def __call__(self) -> float:
        value = self.values[min(self.index, len(self.values) - 1)]
        self.index += 1
        return value


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_loop(clock):
    return FakeLoop(clock)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def selector(memory_store, clock):
    """Selector over an in-memory store with a fixed clock and first-item draws."""
    return AdaptiveSelector(memory_store, DEFAULT_CONFIG, rng=lambda: 0.0, clock=clock)
