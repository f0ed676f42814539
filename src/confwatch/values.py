"""Decodable values held by watches.

A watch is given a factory that returns an empty value; every payload is
decoded into a fresh instance, so a published value is never mutated.
Values may optionally implement ``on_superseded`` and ``on_watch_stopped``
to be told when they stop being current.
"""

import json
import threading
from collections.abc import Callable
from typing import Any, Generic, Optional, Protocol, TypeVar, runtime_checkable

import yaml
from pydantic import BaseModel


@runtime_checkable
class Value(Protocol):
    """Structured value of a key."""

    def decode(self, data: bytes) -> None:
        """Populate the value from a raw payload; raise on malformed data."""
        ...

    def __str__(self) -> str:
        ...


@runtime_checkable
class SupersededCallback(Protocol):
    """Optional hook, called once after a newer value has been published."""

    def on_superseded(self) -> None: ...


@runtime_checkable
class WatchStoppedCallback(Protocol):
    """Optional hook, called once on the current value when its watch stops."""

    def on_watch_stopped(self) -> None: ...


ValueFactory = Callable[[], Value]


class NotifyingValue:
    """Mixin exposing the lifecycle hooks as events callers can wait on.

    Example:
        value = watch.value
        value.superseded.wait()
        value = watch.value  # the newer value
    """

    def __init__(self) -> None:
        self.superseded = threading.Event()
        self.watch_stopped = threading.Event()

    def on_superseded(self) -> None:
        self.superseded.set()

    def on_watch_stopped(self) -> None:
        self.watch_stopped.set()


class RawValue(NotifyingValue):
    """Keeps the payload bytes as-is."""

    def __init__(self) -> None:
        super().__init__()
        self.data = b""

    def decode(self, data: bytes) -> None:
        self.data = bytes(data)

    def __str__(self) -> str:
        return self.data.decode("utf-8", errors="replace")


class DocumentValue(NotifyingValue):
    """JSON or YAML document decoded into plain Python data."""

    def __init__(self, fmt: str = "json") -> None:
        super().__init__()
        if fmt not in ("json", "yaml"):
            raise ValueError(f"Unsupported format: {fmt}")
        self.fmt = fmt
        self.data: Any = None

    def decode(self, data: bytes) -> None:
        if self.fmt == "json":
            self.data = json.loads(data)
        else:
            self.data = yaml.safe_load(data)

    def __str__(self) -> str:
        return json.dumps(self.data, sort_keys=True, default=str)


M = TypeVar("M", bound=BaseModel)


class ModelValue(NotifyingValue, Generic[M]):
    """Payload validated into a pydantic model.

    Use ``model_value`` to build a factory for a watch:

        class Limits(BaseModel):
            max_connections: int
            mode: str = "normal"

        watch = watcher.add_watch("service/limits", model_value(Limits))
        watch.value.model.max_connections
    """

    def __init__(self, model_cls: type[M], fmt: str = "json") -> None:
        super().__init__()
        if fmt not in ("json", "yaml"):
            raise ValueError(f"Unsupported format: {fmt}")
        self.model_cls = model_cls
        self.fmt = fmt
        self.model: Optional[M] = None

    def decode(self, data: bytes) -> None:
        if self.fmt == "json":
            self.model = self.model_cls.model_validate_json(data)
        else:
            self.model = self.model_cls.model_validate(yaml.safe_load(data))

    def __str__(self) -> str:
        return self.model.model_dump_json() if self.model is not None else "null"


def model_value(model_cls: type[M], fmt: str = "json") -> Callable[[], ModelValue[M]]:
    """Factory producing empty ``ModelValue`` instances for ``model_cls``."""
    return lambda: ModelValue(model_cls, fmt)
