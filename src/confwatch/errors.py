"""Error types for confwatch."""


class ConfWatchError(Exception):
    """Base exception for confwatch errors."""
    pass


class ConfigError(ConfWatchError):
    """Configuration error."""
    pass


class ContextCancelled(ConfWatchError):
    """Raised when the governing context has been cancelled."""

    def __init__(self, message: str = "confwatch: context cancelled"):
        super().__init__(message)


class StoreError(ConfWatchError):
    """Raised by store clients when a read cannot be completed."""
    pass


class KeyNotFoundError(ConfWatchError):
    """The store has no value for the watched key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"confwatch: key not found: key={key!r}")


class ValueDecodeError(ConfWatchError):
    """The payload stored under a key could not be decoded."""

    def __init__(self, key: str, data: bytes, cause: BaseException):
        self.key = key
        self.data = data
        self.cause = cause
        super().__init__(
            f"confwatch: value decode failed: err={str(cause)!r} key={key!r} data={data!r}"
        )


class StoreTransportError(ConfWatchError):
    """The store could not be reached while fetching a key."""

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(f"confwatch: kv get failed: err={str(cause)!r} key={key!r}")
