"""Test configuration and shared fixtures for confwatch tests."""

import time

import pytest

from confwatch.retry import RetryPolicy
from confwatch.store.memory import InMemoryKVStore


@pytest.fixture
def store():
    """In-memory store whose blocking reads time out quickly."""
    return InMemoryKVStore(default_wait=0.2)


@pytest.fixture
def fast_policy():
    """Retry policy with millisecond backoff so tests don't stall."""
    return RetryPolicy(min_backoff=0.01, max_backoff=0.05, backoff_jitter=0.5)


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout expires."""

    def _wait_until(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait_until
