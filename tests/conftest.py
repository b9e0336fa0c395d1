"""
Shared pytest fixtures and configuration for DeltaWatch tests.
"""

import pytest

from deltawatch import Observer
from deltawatch.observer import _reset_registry
from deltawatch.paths import clear_path_cache


class Recorder:
    """Callback that remembers every batch of summaries it receives."""

    def __init__(self):
        self.calls = []

    def __call__(self, summaries):
        self.calls.append(summaries)

    @property
    def count(self):
        return len(self.calls)

    @property
    def last(self):
        return self.calls[-1] if self.calls else None

    def reset(self):
        self.calls.clear()


@pytest.fixture(autouse=True)
def reset_registry():
    """Forget live observers and cached paths between tests."""
    _reset_registry()
    clear_path_cache()
    yield
    _reset_registry()


@pytest.fixture
def recorder():
    """Provide a fresh recording callback."""
    return Recorder()


@pytest.fixture
def observer(recorder):
    """Provide an observer wired to the ``recorder`` fixture."""
    obs = Observer(recorder)
    yield obs
    obs.disconnect()
