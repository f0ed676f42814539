"""confwatch - keep a decoded configuration value in sync with a versioned KV store.

Example:
    >>> from confwatch import Watcher, model_value
    >>> from confwatch.store import ConsulKVStore
    >>> watcher = Watcher(ConsulKVStore("http://127.0.0.1:8500"))
    >>> watch = watcher.add_watch("service/web/config", model_value(WebConfig))
    >>> watch.value.model.max_connections
    >>> watch.remove()
"""

from .context import Context
from .errors import (
    ConfigError,
    ConfWatchError,
    ContextCancelled,
    KeyNotFoundError,
    StoreError,
    StoreTransportError,
    ValueDecodeError,
)
from .retry import RetryPolicy
from .values import (
    DocumentValue,
    ModelValue,
    NotifyingValue,
    RawValue,
    SupersededCallback,
    Value,
    ValueFactory,
    WatchStoppedCallback,
    model_value,
)
from .watch import Watch, Watcher, WatchStats

__version__ = "0.1.0"

__all__ = [
    # Watches
    "Watcher",
    "Watch",
    "WatchStats",
    # Retry
    "RetryPolicy",
    "Context",
    # Values
    "Value",
    "ValueFactory",
    "SupersededCallback",
    "WatchStoppedCallback",
    "NotifyingValue",
    "RawValue",
    "DocumentValue",
    "ModelValue",
    "model_value",
    # Errors
    "ConfWatchError",
    "ConfigError",
    "ContextCancelled",
    "KeyNotFoundError",
    "StoreError",
    "StoreTransportError",
    "ValueDecodeError",
]
