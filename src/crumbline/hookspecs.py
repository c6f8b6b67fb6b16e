# src/crumbline/hookspecs.py
"""pluggy hook specifications for transports.

Transports implement these hooks to register themselves. The factory calls
these hooks when a Client is built to discover available transports.

Usage (implementing a transport plugin):
    from crumbline.hookspecs import hookimpl

    class MyTransportPlugin:
        @hookimpl
        def crumbline_get_transports(self):
            return [MyTransport]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from crumbline.protocols import TransportProtocol

PROJECT_NAME = "crumbline"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class CrumblineTransportSpec:
    """Hook specifications for transport plugins."""

    @hookspec
    def crumbline_get_transports(self) -> list[type["TransportProtocol"]]:  # type: ignore[empty-body]
        """Return transport classes.

        Called while a Client is built to discover available transports.
        The transport named by the ``transport`` option is then
        instantiated and configured.

        Returns:
            List of transport classes (not instances) that implement
            TransportProtocol
        """
