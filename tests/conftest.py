"""
Pytest configuration for the LazyBag tests.

Puts the project root on the Python path so tests can import lazy, utils,
models, app and client, and provides closeable sources that record how
often they were released.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest


class TrackingSource:
    """Single-pass iterator with a close() that counts its calls."""

    def __init__(self, items):
        self._iterator = iter(items)
        self.pulled = 0
        self.close_calls = 0

    def __iter__(self):
        return self

    def __next__(self):
        item = next(self._iterator)
        self.pulled += 1
        return item

    def close(self):
        self.close_calls += 1


@pytest.fixture
def tracking_source():
    """Factory for TrackingSource instances."""
    return TrackingSource


@pytest.fixture
def generator_source():
    """Factory for generators that record when they are finalized."""
    events = []

    def _make(items):
        def _gen():
            try:
                for item in items:
                    yield item
            finally:
                events.append("closed")
        return _gen()

    _make.events = events
    return _make
