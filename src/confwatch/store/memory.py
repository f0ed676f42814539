"""In-memory implementation of KVStore for testing.

This provides a thread-safe store that mimics the indexing and blocking
read semantics of Consul's KV API.
"""

import threading
import time
from typing import Optional

from ..context import Context
from .base import KVEntry

# Slice used to re-check cancellation while a blocking read waits
_POLL_SLICE = 0.05


class InMemoryKVStore:
    """In-memory versioned store for tests and local development.

    Every write and delete bumps a store-wide index. A key that has never
    existed, or has been deleted, reports the index of the latest deletion
    (or the store index), so a blocking read on a missing key returns as
    soon as anything newer happens.
    """

    def __init__(self, default_wait: float = 5.0):
        """Initialize empty store.

        Args:
            default_wait: Seconds a blocking read is held open when the caller
                does not pass ``wait``
        """
        self.default_wait = default_wait
        self._data: dict[str, KVEntry] = {}
        self._tombstones: dict[str, int] = {}
        self._index = 0
        self._cond = threading.Condition()

    def _observed_index(self, key: str) -> int:
        entry = self._data.get(key)
        if entry is not None:
            return entry.version
        return self._tombstones.get(key, self._index)

    def get(
        self,
        key: str,
        *,
        min_version: Optional[int] = None,
        wait: Optional[float] = None,
        context: Optional[Context] = None,
    ) -> Optional[KVEntry]:
        """Get current entry, blocking while its index is <= ``min_version``."""
        if context is not None:
            context.raise_if_cancelled()

        with self._cond:
            if min_version is not None:
                timeout = self.default_wait if wait is None else wait
                deadline = time.monotonic() + timeout
                while self._observed_index(key) <= min_version:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(min(remaining, _POLL_SLICE))
                    if context is not None:
                        context.raise_if_cancelled()
            return self._data.get(key)

    def put(self, key: str, value: bytes, version: Optional[int] = None) -> int:
        """Write a value and return its index.

        Args:
            key: Store key
            value: Raw payload
            version: Explicit index to record instead of the next store index;
                used to simulate a snapshot restore that moves indexes backwards

        Returns:
            The index stamped on the entry
        """
        with self._cond:
            if version is None:
                self._index += 1
                version = self._index
            else:
                self._index = max(self._index, version)
            self._data[key] = KVEntry(value=value, version=version)
            self._tombstones.pop(key, None)
            self._cond.notify_all()
            return version

    def delete(self, key: str) -> bool:
        """Delete a key. Returns False if it didn't exist."""
        with self._cond:
            if key not in self._data:
                return False
            del self._data[key]
            self._index += 1
            self._tombstones[key] = self._index
            self._cond.notify_all()
            return True

    def list_keys(self, prefix: str = "") -> list[str]:
        """List keys with prefix."""
        with self._cond:
            return [key for key in self._data if key.startswith(prefix)]

    def clear(self) -> None:
        """Clear all data (useful for tests)."""
        with self._cond:
            self._data.clear()
            self._tombstones.clear()
            self._index = 0
            self._cond.notify_all()
