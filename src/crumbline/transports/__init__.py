# src/crumbline/transports/__init__.py
"""Built-in transports.

Transports deliver encoded events to the collector named by the DSN. They
are discovered via pluggy hooks.

Available transports:
- BeaconTransport ("beacon"): one-way fire-and-forget, response ignored
- AsyncTransport ("async"): request/response from a background worker
- SyncTransport ("sync"): blocking request/response on the caller's thread

Plugin registration:
    The BuiltinTransportsPlugin in this module registers all built-in
    transports through the crumbline_get_transports hook.
"""

from crumbline.hookspecs import hookimpl
from crumbline.transports.beacon import BeaconTransport
from crumbline.transports.http import AsyncTransport, HTTPTransport, SyncTransport

DEFAULT_TRANSPORT = "async"


class BuiltinTransportsPlugin:
    """Plugin that registers built-in transports."""

    @hookimpl
    def crumbline_get_transports(self) -> list[type]:
        """Return built-in transport classes."""
        return [BeaconTransport, AsyncTransport, SyncTransport]


__all__ = [
    "DEFAULT_TRANSPORT",
    "AsyncTransport",
    "BeaconTransport",
    "BuiltinTransportsPlugin",
    "HTTPTransport",
    "SyncTransport",
]
