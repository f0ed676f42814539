"""Cancellation contexts shared by the retry executor and store clients."""

import threading
from typing import Optional

from .errors import ContextCancelled


class Context:
    """Cooperative cancellation signal.

    Cancelling a context cancels all of its children. Waiting on a context
    returns as soon as it is cancelled, which is how blocking reads and
    backoff sleeps are interrupted.
    """

    def __init__(self, parent: Optional["Context"] = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: set["Context"] = set()
        self._error: Optional[ContextCancelled] = None
        self._parent = parent
        if parent is not None:
            parent._adopt(self)

    def _adopt(self, child: "Context") -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.add(child)
                return
        child.cancel()

    def _forget(self, child: "Context") -> None:
        with self._lock:
            self._children.discard(child)

    def cancel(self) -> None:
        """Cancel this context and its children. Safe to call more than once."""
        with self._lock:
            if self._event.is_set():
                return
            self._error = ContextCancelled()
            self._event.set()
            children, self._children = self._children, set()
        for child in children:
            child.cancel()
        if self._parent is not None:
            self._parent._forget(self)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def error(self) -> Optional[ContextCancelled]:
        """The cancellation error, or None while the context is live."""
        return self._error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block up to ``timeout`` seconds; returns True if cancelled."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._error is not None:
            raise self._error
