"""Pytest configuration and shared fixtures."""
import pytest

from tinybus.events import EventBus


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder():
    """Callable that appends every call's arguments to ``recorder.calls``."""

    class Recorder:
        def __init__(self):
            self.calls = []

        def __call__(self, *args, **kwargs):
            self.calls.append((args, kwargs))

    return Recorder()
