# src/crumbline/__init__.py
"""crumbline: client-side event, breadcrumb and session capture.

The module-level functions act on the Client created by the most recent
``init()``. Before ``init()`` they do nothing and return None. Calling
``init()`` again closes the previous Client first.

Usage:
    import crumbline

    crumbline.init(dsn="https://collector.example.com/api/logs", environment="production")
    crumbline.set_user({"id": "42"})
    try:
        checkout()
    except Exception as e:
        crumbline.capture_exception(e, {"action": "checkout"})
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

from crumbline.breadcrumbs import Breadcrumb, BreadcrumbBuffer, BreadcrumbType
from crumbline.client import Client
from crumbline.config import Settings
from crumbline.errors import CrumblineError, DropReason, TransportError
from crumbline.events import EventHint, LogEvent, LogLevel, Release
from crumbline.hooks import DROP, HookResult, Keep
from crumbline.hookspecs import hookimpl
from crumbline.scope import Scope
from crumbline.tracing import Span, Transaction

__version__ = "0.1.0"

T = TypeVar("T")

_client: Client | None = None
_client_lock = threading.Lock()


def init(options: Mapping[str, Any] | None = None, **kwargs: Any) -> Client:
    """Create the Client used by the module-level functions.

    Any previous Client is closed (its pending sends drained) before the new
    one is built, so handles held by its integrations stop capturing.

    Args:
        options: Option mapping (snake_case or camelCase keys)
        **kwargs: Options, and the Client keyword arguments
            ``transport_plugins`` and ``console``

    Returns:
        The new Client.
    """
    global _client
    with _client_lock:
        previous, _client = _client, None
    if previous is not None:
        previous.close()
    client = Client(options, **kwargs)
    with _client_lock:
        _client = client
    return client


def get_client() -> Client | None:
    """The Client created by the latest ``init()``, if any."""
    return _client


def debug(message: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
    client = _client
    return client.debug(message, context) if client is not None else None


def info(message: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
    client = _client
    return client.info(message, context) if client is not None else None


def warn(message: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
    client = _client
    return client.warn(message, context) if client is not None else None


def error(
    message: str,
    error: BaseException | None = None,
    context: Mapping[str, Any] | None = None,
) -> LogEvent | None:
    client = _client
    return client.error(message, error, context) if client is not None else None


def fatal(
    message: str,
    error: BaseException | None = None,
    context: Mapping[str, Any] | None = None,
) -> LogEvent | None:
    client = _client
    return client.fatal(message, error, context) if client is not None else None


def capture_exception(
    error: BaseException,
    context: Mapping[str, Any] | None = None,
    hint: EventHint | None = None,
    *,
    level: LogLevel | str = LogLevel.ERROR,
) -> LogEvent | None:
    client = _client
    return client.capture_exception(error, context, hint, level=level) if client is not None else None


def capture_message(
    message: str,
    level: LogLevel | str = LogLevel.INFO,
    context: Mapping[str, Any] | None = None,
) -> LogEvent | None:
    client = _client
    return client.capture_message(message, level, context) if client is not None else None


def set_user(user: Mapping[str, Any] | None) -> None:
    if _client is not None:
        _client.set_user(user)


def set_tag(key: str, value: str) -> None:
    if _client is not None:
        _client.set_tag(key, value)


def set_tags(tags: Mapping[str, str]) -> None:
    if _client is not None:
        _client.set_tags(tags)


def set_extra(key: str, value: Any) -> None:
    if _client is not None:
        _client.set_extra(key, value)


def set_extras(extras: Mapping[str, Any]) -> None:
    if _client is not None:
        _client.set_extras(extras)


def set_context(name: str, context: Mapping[str, Any]) -> None:
    if _client is not None:
        _client.set_context(name, context)


def set_level(level: LogLevel | str | None) -> None:
    if _client is not None:
        _client.set_level(level)


def set_fingerprint(fingerprint: list[str] | None) -> None:
    if _client is not None:
        _client.set_fingerprint(fingerprint)


def add_breadcrumb(message: str, **kwargs: Any) -> Breadcrumb | None:
    client = _client
    return client.add_breadcrumb(message, **kwargs) if client is not None else None


def clear_breadcrumbs() -> None:
    if _client is not None:
        _client.clear_breadcrumbs()


def with_scope(callback: Callable[[Scope], T]) -> T:
    """Run ``callback`` in a temporary scope.

    Raises:
        CrumblineError: If ``init()`` has not been called.
    """
    return _require_client().with_scope(callback)


@contextmanager
def push_scope() -> Iterator[Scope]:
    with _require_client().push_scope() as scope:
        yield scope


def start_transaction(name: str) -> Transaction:
    return _require_client().start_transaction(name)


def flush(timeout: float | None = None) -> bool:
    client = _client
    return client.flush(timeout) if client is not None else True


def close(timeout: float | None = None) -> bool:
    """Close the current Client; module-level calls become no-ops again."""
    global _client
    with _client_lock:
        client, _client = _client, None
    return client.close(timeout) if client is not None else True


def _require_client() -> Client:
    client = _client
    if client is None:
        raise CrumblineError("crumbline.init() has not been called")
    return client


__all__ = [
    "DROP",
    "Breadcrumb",
    "BreadcrumbBuffer",
    "BreadcrumbType",
    "Client",
    "CrumblineError",
    "DropReason",
    "EventHint",
    "HookResult",
    "Keep",
    "LogEvent",
    "LogLevel",
    "Release",
    "Scope",
    "Settings",
    "Span",
    "Transaction",
    "TransportError",
    "__version__",
    "add_breadcrumb",
    "capture_exception",
    "capture_message",
    "clear_breadcrumbs",
    "close",
    "debug",
    "error",
    "fatal",
    "flush",
    "get_client",
    "hookimpl",
    "info",
    "init",
    "push_scope",
    "set_context",
    "set_extra",
    "set_extras",
    "set_fingerprint",
    "set_level",
    "set_tag",
    "set_tags",
    "set_user",
    "start_transaction",
    "warn",
]
