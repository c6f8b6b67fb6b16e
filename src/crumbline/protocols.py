# src/crumbline/protocols.py
"""Protocol definitions for transports and integrations.

Transports move an encoded event payload to the collector. Integrations
feed external event sources (stdlib logging, uncaught exceptions, ...) into
a Client through a narrow capture handle.
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from crumbline.integrations.base import CaptureHandle


@runtime_checkable
class TransportProtocol(Protocol):
    """Protocol for event transports.

    Transports are discovered via pluggy hooks and selected by name with
    the ``transport`` option.

    Lifecycle:
        1. Discovery: crumbline_get_transports hook returns transport classes
        2. Instantiation: the factory creates one instance per Client
        3. Configuration: configure() called with timeout and headers
        4. Operation: send() called per sampled event
        5. Shutdown: close() called when the Client closes

    Error handling:
        - configure() MUST raise TransportError on invalid config
        - send() MAY raise; the dispatcher catches, counts and (in debug
          mode) logs every failure. Nothing reaches application code.
        - close() MUST be idempotent
    """

    @property
    def name(self) -> str:
        """Transport name matched against the ``transport`` option."""
        ...

    @property
    def blocking(self) -> bool:
        """True if send() runs on the caller's thread instead of the worker."""
        ...

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the transport.

        Args:
            config: Transport settings (``timeout`` seconds, ``headers``)

        Raises:
            TransportError: If configuration is invalid
        """
        ...

    def send(self, url: str, body: bytes) -> None:
        """Deliver one encoded JSON payload to ``url``."""
        ...

    def close(self) -> None:
        """Release network resources. Must be idempotent."""
        ...


@runtime_checkable
class IntegrationProtocol(Protocol):
    """Protocol for integration adapters.

    ``setup_once`` is called exactly once, synchronously, while the Client
    is being constructed, in configured order. It must wire its event
    source to the Client only through ``handle``. A raising ``setup_once``
    is logged and skipped; the remaining integrations still run.
    """

    @property
    def name(self) -> str: ...

    def setup_once(self, handle: "CaptureHandle") -> None: ...
