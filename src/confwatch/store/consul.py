"""Consul KV implementation of KVStore.

Reads go through Consul's HTTP API (``GET /v1/kv/<key>``). Blocking reads
use the ``index`` and ``wait`` query parameters, so a call returns when the
key's ``ModifyIndex`` moves past ``min_version`` or the wait elapses.
"""

import base64
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from ..errors import StoreError
from ..context import Context
from .base import KVEntry

logger = logging.getLogger(__name__)


class ConsulKVStore:
    """Consul KV client backed by a pooled ``requests.Session``.

    Cancellation is checked before and after each HTTP call; an in-flight
    blocking read runs until Consul answers, which is bounded by ``wait``.

    Attributes:
        address: Base URL of the Consul agent
        token: Optional ACL token sent as ``X-Consul-Token``
        datacenter: Optional datacenter to query
        default_wait: Seconds for blocking reads when the caller passes no wait
        timeout: Extra seconds allowed on top of the wait for the HTTP call
    """

    def __init__(
        self,
        address: str = "http://127.0.0.1:8500",
        token: Optional[str] = None,
        datacenter: Optional[str] = None,
        default_wait: float = 30.0,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.address = address.rstrip("/")
        self.datacenter = datacenter
        self.default_wait = default_wait
        self.timeout = timeout
        self._session = session if session is not None else requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if token:
            self._session.headers["X-Consul-Token"] = token

    def _url(self, key: str) -> str:
        return f"{self.address}/v1/kv/{quote(key.lstrip('/'), safe='/')}"

    def get(
        self,
        key: str,
        *,
        min_version: Optional[int] = None,
        wait: Optional[float] = None,
        context: Optional[Context] = None,
    ) -> Optional[KVEntry]:
        """Read a key, optionally as a blocking query."""
        if context is not None:
            context.raise_if_cancelled()

        params: dict[str, Any] = {}
        timeout = self.timeout
        if self.datacenter:
            params["dc"] = self.datacenter
        if min_version is not None:
            wait = self.default_wait if wait is None else wait
            params["index"] = min_version
            params["wait"] = f"{max(int(wait * 1000), 1)}ms"
            # Consul adds up to wait/16 of jitter to blocking queries
            timeout += wait + wait / 16

        try:
            response = self._session.get(self._url(key), params=params, timeout=timeout)
        except requests.RequestException as e:
            raise StoreError(f"Consul request failed for {key}: {e}") from e

        if context is not None:
            context.raise_if_cancelled()

        if response.status_code == 404:
            return None
        if not response.ok:
            raise StoreError(
                f"Consul returned HTTP {response.status_code} for {key}: {response.text.strip()}"
            )

        try:
            pairs = response.json()
            pair = pairs[0]
            raw = pair.get("Value")
            value = base64.b64decode(raw) if raw else b""
            version = int(pair["ModifyIndex"])
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise StoreError(f"Malformed Consul response for {key}: {e}") from e

        logger.debug(f"Read {key} at index {version} ({len(value)} bytes)")
        return KVEntry(value=value, version=version)

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()
