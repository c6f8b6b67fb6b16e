# src/crumbline/factory.py
"""Factory functions for building the transport side of a Client.

This module provides the glue between Settings and the runtime
TransportDispatcher. It handles:
1. Discovering transport classes via pluggy hooks
2. Instantiating and configuring the selected transport
3. Creating the TransportDispatcher around it

Usage:
    from crumbline.config import Settings
    from crumbline.factory import create_dispatcher

    settings = Settings.from_options(dsn="https://collector.example.com/api/logs")
    dispatcher = create_dispatcher(settings)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pluggy

from crumbline.config import Settings
from crumbline.dispatcher import TransportDispatcher
from crumbline.errors import TransportError
from crumbline.hookspecs import PROJECT_NAME, CrumblineTransportSpec
from crumbline.logging import get_logger
from crumbline.protocols import TransportProtocol
from crumbline.sampling import SamplingFilter
from crumbline.transports import DEFAULT_TRANSPORT, BuiltinTransportsPlugin

logger = get_logger(__name__)


def _resolve_transport_name(transport_class: type[TransportProtocol]) -> str:
    """Resolve transport name from the class-level ``_name`` or an instance.

    Raises:
        TransportError: If the name is missing or not a non-empty string.
    """
    try:
        class_name = transport_class.__name__
    except AttributeError as e:  # pragma: no cover - plugin code boundary
        raise TransportError(
            "transport_plugins",
            f"Invalid transport declaration without __name__: {transport_class!r}",
        ) from e

    class_name_hint = getattr(transport_class, "_name", None)
    if class_name_hint is not None:
        if type(class_name_hint) is str and class_name_hint != "":
            return class_name_hint
        raise TransportError(
            class_name,
            f"Transport class attribute _name must be a non-empty string, got {class_name_hint!r}",
        )

    try:
        transport_instance = transport_class()
    except Exception as e:  # pragma: no cover - plugin code boundary
        raise TransportError(
            class_name,
            f"Failed to instantiate transport class during discovery: {e}",
        ) from e

    resolved_name = transport_instance.name
    if type(resolved_name) is not str or resolved_name == "":
        raise TransportError(
            class_name,
            f"Transport name must be a non-empty string, got {resolved_name!r}",
        )
    return resolved_name


def discover_transport_registry(
    transport_plugins: Iterable[Any] = (),
) -> dict[str, type[TransportProtocol]]:
    """Discover transports via pluggy hooks.

    Registers the built-in transports plus any additional plugin objects,
    then calls ``crumbline_get_transports`` hooks to build the runtime
    name->class registry.

    Args:
        transport_plugins: Optional plugin objects implementing
            ``crumbline_get_transports``.

    Returns:
        Mapping of transport name to transport class.

    Raises:
        TransportError: If plugin registration fails, a hook misbehaves, or
            two transports share a name.
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(CrumblineTransportSpec)

    plugins_to_register: list[Any] = [BuiltinTransportsPlugin(), *list(transport_plugins)]
    for plugin in plugins_to_register:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            # PluginValidationError: hook spec mismatch (wrong method names, etc.)
            # ValueError: duplicate plugin object or plugin name already registered
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise TransportError(
                "transport_plugins",
                f"Invalid transport plugin {type(plugin).__name__}: {e}",
            ) from e

    registry: dict[str, type[TransportProtocol]] = {}
    for hook_impl in plugin_manager.hook.crumbline_get_transports.get_hookimpls():
        hook_plugin: Any = hook_impl.plugin
        plugin_name = type(hook_plugin).__name__
        try:
            transports = hook_plugin.crumbline_get_transports()
        except Exception as e:
            raise TransportError(
                "transport_plugins",
                f"Transport plugin {plugin_name} failed in crumbline_get_transports: {e}",
            ) from e

        if transports is None or type(transports) in (str, bytes):
            raise TransportError(
                "transport_plugins",
                f"crumbline_get_transports in plugin {plugin_name} returned "
                f"{type(transports).__name__}; expected iterable of transport classes",
            )
        try:
            transport_iter = iter(transports)
        except TypeError as e:
            raise TransportError(
                "transport_plugins",
                f"crumbline_get_transports in plugin {plugin_name} returned "
                f"{type(transports).__name__}; expected iterable of transport classes",
            ) from e

        for transport_class in transport_iter:
            transport_name = _resolve_transport_name(transport_class)
            if transport_name in registry:
                existing = registry[transport_name].__name__
                raise TransportError(
                    transport_name,
                    f"Duplicate transport name '{transport_name}' discovered: "
                    f"{existing} and {transport_class.__name__}",
                )
            registry[transport_name] = transport_class

    return registry


def create_transport(
    settings: Settings,
    *,
    transport_plugins: Iterable[Any] = (),
) -> TransportProtocol | None:
    """Instantiate and configure the transport selected by ``settings``.

    Returns:
        The configured transport, or None when no DSN is configured.

    Raises:
        TransportError: If discovery or configuration fails.
    """
    if not settings.dsn:
        logger.debug("transport_disabled", reason="no dsn configured")
        return None

    registry = discover_transport_registry(transport_plugins)
    name = settings.transport
    if name not in registry:
        logger.warning(
            "Unknown transport, using default",
            transport=name,
            default=DEFAULT_TRANSPORT,
            available=sorted(registry),
        )
        name = DEFAULT_TRANSPORT

    transport = registry[name]()
    transport.configure({"timeout": settings.transport_timeout})
    logger.debug("transport_configured", transport=name)
    return transport


def create_dispatcher(
    settings: Settings,
    *,
    transport_plugins: Iterable[Any] = (),
    sampler: SamplingFilter | None = None,
) -> TransportDispatcher:
    """Create the TransportDispatcher for a Client.

    A transport that cannot be created is logged and replaced by no
    transport at all: the dispatcher then drops every event.
    """
    try:
        transport = create_transport(settings, transport_plugins=transport_plugins)
    except TransportError as e:
        logger.error("Transport setup failed, events will not be sent", transport=e.transport_name, error=e.message)
        transport = None

    return TransportDispatcher(
        dsn=settings.dsn,
        transport=transport,
        sampler=sampler or SamplingFilter(settings.sample_rate),
        server_name=settings.server_name,
        debug=settings.debug,
        queue_size=settings.transport_queue_size,
        shutdown_timeout=settings.shutdown_timeout,
    )
