"""Retry executor with exponential backoff and symmetric jitter.

Drives any zero-argument operation that reports success as a boolean:

    policy = RetryPolicy(max_attempts=5, backoff_jitter=0.5)
    if policy.run(context, lambda: try_connect()):
        ...

``run`` returns True on success, False when the attempt budget is
exhausted, and raises ``ContextCancelled`` when the context is cancelled
during a backoff wait.
"""

import logging
import random
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

from .context import Context

logger = logging.getLogger(__name__)

DEFAULT_MIN_BACKOFF = 0.1  # seconds
DEFAULT_MAX_BACKOFF = 300.0
DEFAULT_BACKOFF_FACTOR = 2.0


@dataclass
class RetryPolicy:
    """Backoff configuration for ``run``.

    Unset (zero) fields are filled with defaults the first time the policy
    is used; the normalized values then stay fixed for the policy's lifetime.

    Attributes:
        max_attempts: Attempts before giving up (0 = unlimited)
        min_backoff: Wait before the first retry, in seconds (default 0.1)
        max_backoff: Upper bound for a single wait, in seconds (default 300)
        backoff_factor: Growth factor between waits, >= 1.0 (default 2.0)
        backoff_jitter: Randomization band in [0, 1]; the wait is scaled by
            a uniform factor in [1 - jitter, 1 + jitter]
    """

    max_attempts: int = 0
    min_backoff: float = 0.0
    max_backoff: float = 0.0
    backoff_factor: float = 0.0
    backoff_jitter: float = 0.0
    rng: Optional[random.Random] = field(default=None, repr=False, compare=False)

    _normalized: bool = field(default=False, init=False, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def normalize(self) -> "RetryPolicy":
        """Apply defaults and clamp fields. Only the first call has an effect."""
        if self._normalized:
            return self
        with self._lock:
            if self._normalized:
                return self
            if self.min_backoff <= 0:
                self.min_backoff = DEFAULT_MIN_BACKOFF
            if self.max_backoff <= 0:
                self.max_backoff = DEFAULT_MAX_BACKOFF
            if self.max_backoff < self.min_backoff:
                self.max_backoff = self.min_backoff
            if self.backoff_factor < 1.0:
                self.backoff_factor = DEFAULT_BACKOFF_FACTOR
            self.backoff_jitter = min(max(self.backoff_jitter, 0.0), 1.0)
            if self.rng is None:
                self.rng = random.Random()
            self._normalized = True
        return self

    def next_backoff(self, backoff: float) -> float:
        """Nominal wait following ``backoff`` (0 means no retry has happened yet)."""
        if backoff <= 0:
            return self.min_backoff
        return min(backoff * self.backoff_factor, self.max_backoff)

    def jittered(self, backoff: float) -> float:
        """Scale ``backoff`` by a uniform factor in [1 - jitter, 1 + jitter]."""
        jitter = self.backoff_jitter
        return backoff * ((1.0 - jitter) + 2.0 * jitter * self.rng.random())

    def run(self, context: Context, operation: Callable[[], bool]) -> bool:
        """Invoke ``operation`` until it returns True.

        Args:
            context: Cancellation context observed while waiting between attempts
            operation: Zero-argument callable returning a success flag

        Returns:
            True once the operation succeeds, False if ``max_attempts``
            unsuccessful attempts were made.

        Raises:
            ContextCancelled: If the context is cancelled during a backoff wait
        """
        self.normalize()
        attempts = 0
        backoff = 0.0

        while True:
            if operation():
                return True

            attempts += 1
            if attempts == self.max_attempts:
                logger.debug(f"Giving up after {attempts} attempts")
                return False

            backoff = self.next_backoff(backoff)
            delay = self.jittered(backoff)
            logger.debug(f"Attempt {attempts} failed, retrying in {delay:.3f}s")

            if context.wait(delay):
                raise context.error
