# src/crumbline/transports/http.py
"""HTTP request transports.

Two request/response mechanisms built on httpx:
- AsyncTransport ("async"): sends from the dispatcher's worker thread, so
  the log call returns immediately; the response status is checked.
- SyncTransport ("sync"): sends on the caller's thread and blocks until the
  collector answers; the response status is checked.

Both POST the identical JSON body with ``Content-Type: application/json``.
"""

from __future__ import annotations

from typing import Any

import httpx

from crumbline.errors import TransportError
from crumbline.events import SDK_INFO
from crumbline.logging import get_logger

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "User-Agent": f"{SDK_INFO.name}/{SDK_INFO.version}",
}


class HTTPTransport:
    """Shared httpx plumbing for the request-based transports.

    Configuration options:
        timeout: Request timeout in seconds (default: 5.0)
        headers: Extra request headers (default: none)
    """

    _name = "http"
    _blocking = False
    _check_status = True

    def __init__(self) -> None:
        """Initialize unconfigured transport."""
        self._timeout: float = 5.0
        self._headers: dict[str, str] = dict(DEFAULT_HEADERS)
        self._client: httpx.Client | None = None

    @property
    def name(self) -> str:
        """Transport name for configuration reference."""
        return self._name

    @property
    def blocking(self) -> bool:
        return self._blocking

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the transport.

        Args:
            config: Transport settings

        Raises:
            TransportError: If configuration values are invalid
        """
        timeout = config.get("timeout", 5.0)
        if isinstance(timeout, bool) or not isinstance(timeout, int | float):
            raise TransportError(
                self._name,
                f"'timeout' must be a number, got {type(timeout).__name__}",
            )
        if timeout <= 0:
            raise TransportError(self._name, f"'timeout' must be positive, got {timeout}")
        self._timeout = float(timeout)

        headers = config.get("headers", {})
        if not isinstance(headers, dict):
            raise TransportError(
                self._name,
                f"'headers' must be a dict, got {type(headers).__name__}",
            )
        self._headers = {**DEFAULT_HEADERS, **headers}

        # httpx.Client is thread-safe; one pooled client serves every send.
        self._client = httpx.Client(timeout=self._timeout, headers=self._headers)

        logger.debug("Transport configured", transport=self._name, timeout=self._timeout)

    def send(self, url: str, body: bytes) -> None:
        """POST ``body`` to ``url``.

        Raises:
            httpx.HTTPError: On network failure, or on an error status when
                the transport checks responses.
        """
        if self._client is None:
            raise TransportError(self._name, "send() called before configure()")
        response = self._client.post(url, content=body)
        if self._check_status:
            response.raise_for_status()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


class AsyncTransport(HTTPTransport):
    """Request/response send performed off the caller's thread."""

    _name = "async"


class SyncTransport(HTTPTransport):
    """Blocking request/response send on the caller's thread."""

    _name = "sync"
    _blocking = True
