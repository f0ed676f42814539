"""Store clients for confwatch."""

from .base import KVEntry, KVStore
from .consul import ConsulKVStore
from .memory import InMemoryKVStore

__all__ = [
    "KVEntry",
    "KVStore",
    "ConsulKVStore",
    "InMemoryKVStore",
]
