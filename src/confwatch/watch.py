"""Watches that keep a decoded value in sync with a store key.

A watch performs one synchronous read to load the initial value, then a
background thread long-polls the store and republishes every new version
that decodes cleanly:

    watcher = Watcher(ConsulKVStore("http://consul:8500"))
    with watcher.add_watch("service/web/config", model_value(WebConfig)) as watch:
        serve(lambda: watch.value.model)

Reads of ``Watch.value`` never block. The background thread is the only
writer of the published value and its version index.
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Optional

from .context import Context
from .errors import (
    ContextCancelled,
    KeyNotFoundError,
    StoreError,
    StoreTransportError,
    ValueDecodeError,
)
from .retry import RetryPolicy
from .store.base import KVEntry, KVStore
from .values import SupersededCallback, Value, ValueFactory, WatchStoppedCallback

# Index value meaning "no baseline": the next poll returns immediately
NO_VERSION = 0


def default_retry_policy() -> RetryPolicy:
    """Policy used by background polls: jitter 0.5, everything else defaulted."""
    return RetryPolicy(backoff_jitter=0.5)


@dataclass
class WatchStats:
    """Counters maintained by a watch's background thread."""

    polls: int = 0
    updates: int = 0
    decode_failures: int = 0
    fetch_failures: int = 0
    last_update_at: Optional[float] = None


class Watcher:
    """Entry point for creating watches against one store.

    Holds only the store client, the logger and the retry policy used by
    background polls; all of them are shared read-only by its watches.
    """

    def __init__(
        self,
        store: KVStore,
        logger: Optional[logging.Logger] = None,
        retry_policy: Optional[RetryPolicy] = None,
        wait: Optional[float] = None,
    ):
        """Initialize watcher.

        Args:
            store: Store client used for every read
            logger: Logger for watch events (defaults to this module's logger)
            retry_policy: Backoff for failed background polls
            wait: Seconds each blocking read is held open (store default if None)
        """
        self.store = store
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.retry_policy = retry_policy or default_retry_policy()
        self.wait = wait

    def add_watch(
        self,
        key: str,
        value_factory: ValueFactory,
        context: Optional[Context] = None,
    ) -> "Watch":
        """Load the current value of ``key`` and start watching it.

        The initial read is never retried; callers decide whether to try again.

        Args:
            key: Store key to watch
            value_factory: Returns an empty value to decode each payload into
            context: Cancellation context for the initial read

        Returns:
            A running Watch whose value is already populated

        Raises:
            KeyNotFoundError: The key does not exist
            ValueDecodeError: The payload could not be decoded
            StoreTransportError: The store could not be read
            ContextCancelled: ``context`` was cancelled
        """
        watch = Watch(self, key, value_factory)
        watch._load(context)
        watch._start()
        return watch


class Watch:
    """A watch on a single key. Created by ``Watcher.add_watch``."""

    def __init__(self, watcher: Watcher, key: str, value_factory: ValueFactory):
        self._store = watcher.store
        self._logger = watcher.logger
        self._retry_policy = watcher.retry_policy
        self._wait = watcher.wait
        self._key = key
        self._value_factory = value_factory
        self._value: Optional[Value] = None
        self._version = NO_VERSION
        self._rejected_version: Optional[int] = None
        self._stats = WatchStats()
        self._context = Context()
        self._thread: Optional[threading.Thread] = None
        self._remove_lock = threading.Lock()

    @property
    def key(self) -> str:
        """The watched key."""
        return self._key

    @property
    def value(self) -> Value:
        """Latest successfully decoded value."""
        return self._value

    @property
    def version(self) -> int:
        """Store index of the latest value, or 0 after an index reset."""
        return self._version

    @property
    def stats(self) -> WatchStats:
        """Snapshot of the background thread's counters."""
        return replace(self._stats)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def remove(self) -> None:
        """Stop the watch and wait for the background thread to exit.

        No callbacks fire and no store reads are issued once this returns,
        except when called from a callback on the watch's own thread, in
        which case the thread exits right after the callback.

        An in-flight blocking read is not interrupted. The in-memory store
        notices cancellation within 50ms; ``ConsulKVStore`` only after the
        request returns, which takes at most ``wait + wait/16 + timeout``
        seconds (about 42s with the default settings).
        """
        with self._remove_lock:
            self._context.cancel()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def __enter__(self) -> "Watch":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.remove()

    def __repr__(self) -> str:
        return f"Watch(key={self._key!r}, version={self._version})"

    def _decode(self, data: bytes) -> Value:
        value = self._value_factory()
        value.decode(data)
        return value

    def _load(self, context: Optional[Context]) -> None:
        try:
            entry = self._store.get(self._key, context=context)
        except StoreError as e:
            raise StoreTransportError(self._key, e) from e

        if entry is None:
            raise KeyNotFoundError(self._key)

        try:
            value = self._decode(entry.value)
        except Exception as e:
            raise ValueDecodeError(self._key, entry.value, e) from e

        self._value = value
        self._version = entry.version
        self._logger.info(f"Watch on {self._key} loaded version {entry.version}: {value}")

    def _start(self) -> None:
        self._thread = threading.Thread(
            target=self._run,
            name=f"confwatch-{self._key}",
            daemon=True,
        )
        self._thread.start()

    def _run(self) -> None:
        try:
            while True:
                entry = self._poll()
                if entry is None:
                    break
                self._apply(entry)
        finally:
            self._logger.info(f"Watch on {self._key} stopped")
            value = self._value
            if isinstance(value, WatchStoppedCallback):
                value.on_watch_stopped()

    def _poll(self) -> Optional[KVEntry]:
        """Blocking read driven by the retry policy; None once the watch ends."""
        result: Optional[KVEntry] = None

        def attempt() -> bool:
            nonlocal result
            self._stats.polls += 1
            try:
                # Block past a version that failed to decode without adopting it
                entry = self._store.get(
                    self._key,
                    min_version=max(self._version, self._rejected_version or NO_VERSION),
                    wait=self._wait,
                    context=self._context,
                )
            except StoreError as e:
                self._stats.fetch_failures += 1
                self._logger.warning(f"Watch on {self._key} failed to read store: {e}")
                return False

            if entry is None:
                self._stats.fetch_failures += 1
                self._logger.error(f"Watch on {self._key}: key not found")
                return False

            result = entry
            return True

        try:
            if not self._retry_policy.run(self._context, attempt):
                self._logger.warning(f"Watch on {self._key} gave up after exhausting retries")
                return None
        except ContextCancelled:
            return None
        return result

    def _apply(self, entry: KVEntry) -> None:
        if entry.version in (self._version, self._rejected_version):
            return

        regressed = entry.version < self._version
        if regressed:
            # A payload that decodes becomes the new baseline below, so it is not decoded twice
            self._logger.warning(
                f"Watch on {self._key}: index went backwards "
                f"({self._version} -> {entry.version}), resetting"
            )

        try:
            value = self._decode(entry.value)
        except Exception as e:
            self._stats.decode_failures += 1
            self._rejected_version = entry.version
            self._logger.error(
                f"Watch on {self._key} failed to decode version {entry.version}: {e} "
                f"(data={entry.value!r})"
            )
            if regressed:
                self._version = NO_VERSION
            return

        old_value = self._value
        self._value = value
        self._version = entry.version
        self._rejected_version = None
        self._stats.updates += 1
        self._stats.last_update_at = time.time()
        self._logger.info(f"Watch on {self._key} updated to version {entry.version}: {value}")

        if isinstance(old_value, SupersededCallback):
            old_value.on_superseded()
