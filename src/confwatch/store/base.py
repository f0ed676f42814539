"""Key-value store protocol consumed by watches.

The store attaches a monotonically increasing index to every key and
supports blocking reads: a get with ``min_version`` set is held open until
the key's index moves past it or the server-side wait elapses.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from ..context import Context


@dataclass(frozen=True)
class KVEntry:
    """A value read from the store together with its change index."""

    value: bytes
    version: int


class KVStore(Protocol):
    """Versioned key-value store with blocking reads.

    Implementations raise ``StoreError`` when a read cannot be completed
    and ``ContextCancelled`` when the supplied context is cancelled.
    """

    def get(
        self,
        key: str,
        *,
        min_version: Optional[int] = None,
        wait: Optional[float] = None,
        context: Optional[Context] = None,
    ) -> Optional[KVEntry]:
        """Read a key.

        Args:
            key: Store key (e.g., "service/web/config")
            min_version: If set, block until the key's index exceeds it
            wait: Maximum seconds to block; implementation default if None
            context: Cancellation context for the call

        Returns:
            The entry, or None if the key does not exist. After a blocking
            wait times out, the unchanged entry is returned.
        """
        ...
