# src/crumbline/client.py
"""Client: the explicit context object that owns one capture pipeline.

A Client holds the live Scope, the Session, the Settings, the console
renderer and the transport dispatcher. Applications create one (usually via
``crumbline.init()``) and pass it, or a CaptureHandle over it, to whatever
needs to record events.

Once closed, a Client drops every capture call. Integrations wired to a
replaced Client therefore go quiet instead of writing into discarded state.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

from rich.console import Console

from crumbline.breadcrumbs import Breadcrumb, BreadcrumbType
from crumbline.config import Settings
from crumbline.console import ConsoleRenderer
from crumbline.dispatcher import TransportDispatcher
from crumbline.errors import DropReason
from crumbline.events import EventHint, LogEvent, LogLevel
from crumbline.factory import create_dispatcher
from crumbline.integrations.base import CaptureHandle, setup_integrations, teardown_integrations
from crumbline.logging import configure_logging, get_logger
from crumbline.pipeline import EventPipeline
from crumbline.protocols import IntegrationProtocol
from crumbline.scope import Scope, ScopeStore
from crumbline.session import Session, SessionManager
from crumbline.tracing import Transaction

logger = get_logger(__name__)

T = TypeVar("T")


class Client:
    """Captures log calls, exceptions and breadcrumbs for one application.

    Example:
        >>> client = Client(dsn="https://collector.example.com/api/logs", environment="production")
        >>> client.set_tag("region", "eu-west-1")
        >>> client.info("Checkout started", {"cart_items": 3})
        >>> client.close()
    """

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        transport_plugins: Iterable[Any] = (),
        console: Console | None = None,
        **kwargs: Any,
    ) -> None:
        """Build every collaborator from the given options.

        Never raises for malformed options: invalid values are logged and
        replaced by defaults, a transport that cannot be set up is replaced
        by none, and failing integrations are skipped.

        Args:
            options: Option mapping (snake_case or camelCase keys)
            transport_plugins: Extra pluggy plugins providing transports
            console: rich Console for event rendering (default: stderr)
            **kwargs: Options given as keyword arguments
        """
        # Installed first so warnings about rejected options are visible
        configure_logging()
        self._settings = settings = Settings.from_options(options, **kwargs)
        configure_logging(debug=settings.debug)

        self._closed = False
        self._scopes = ScopeStore(
            max_breadcrumbs=settings.max_breadcrumbs,
            before_breadcrumb=settings.before_breadcrumb,
            default_tags=settings.default_tags,
            default_context=settings.default_context,
            initial_scope=settings.initial_scope,
        )
        self._sessions = SessionManager(settings.session_timeout_ms)
        self._dispatcher = create_dispatcher(settings, transport_plugins=transport_plugins)
        self._renderer = ConsoleRenderer(enabled=settings.enable_console_logging, console=console)
        self._pipeline = EventPipeline(settings, self._scopes, self._sessions, self._renderer, self._dispatcher)
        self._integrations = setup_integrations(settings.integrations, CaptureHandle(self))

        logger.debug(
            "Client initialized",
            environment=settings.environment,
            transport=settings.transport,
            dsn_configured=bool(settings.dsn),
            integrations=[integration.name for integration in self._integrations],
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def scope(self) -> Scope:
        """The live scope."""
        return self._scopes.scope

    @property
    def session(self) -> Session:
        """The current session, without checking for expiry."""
        return self._sessions.session

    @property
    def dispatcher(self) -> TransportDispatcher:
        return self._dispatcher

    @property
    def integrations(self) -> list[IntegrationProtocol]:
        """Integrations whose setup succeeded, in setup order."""
        return list(self._integrations)

    @property
    def closed(self) -> bool:
        return self._closed

    # Capture

    def _log(
        self,
        level: LogLevel | str,
        message: str,
        context: Mapping[str, Any] | None = None,
        error: BaseException | None = None,
        hint: EventHint | None = None,
    ) -> LogEvent | None:
        if self._closed:
            logger.debug("Event dropped", reason=DropReason.CLIENT_CLOSED, level=str(level))
            return None
        return self._pipeline.capture(level, message, context, error, hint)

    def debug(self, message: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
        return self._log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
        return self._log(LogLevel.INFO, message, context)

    def warn(self, message: str, context: Mapping[str, Any] | None = None) -> LogEvent | None:
        return self._log(LogLevel.WARN, message, context)

    def error(
        self,
        message: str,
        error: BaseException | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> LogEvent | None:
        return self._log(LogLevel.ERROR, message, context, error)

    def fatal(
        self,
        message: str,
        error: BaseException | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> LogEvent | None:
        return self._log(LogLevel.FATAL, message, context, error)

    def capture_exception(
        self,
        error: BaseException,
        context: Mapping[str, Any] | None = None,
        hint: EventHint | None = None,
        *,
        level: LogLevel | str = LogLevel.ERROR,
    ) -> LogEvent | None:
        """Capture an exception; the event message is the exception's message.

        Returns:
            The event handed to the dispatcher, or None if it was dropped.
        """
        return self._log(level, str(error) or type(error).__name__, context, error, hint)

    def capture_message(
        self,
        message: str,
        level: LogLevel | str = LogLevel.INFO,
        context: Mapping[str, Any] | None = None,
    ) -> LogEvent | None:
        return self._log(level, message, context)

    # Scope

    def set_user(self, user: Mapping[str, Any] | None) -> None:
        self.scope.set_user(user)

    def set_tag(self, key: str, value: str) -> None:
        self.scope.set_tag(key, value)

    def set_tags(self, tags: Mapping[str, str]) -> None:
        self.scope.set_tags(tags)

    def set_extra(self, key: str, value: Any) -> None:
        self.scope.set_extra(key, value)

    def set_extras(self, extras: Mapping[str, Any]) -> None:
        self.scope.set_extras(extras)

    def set_context(self, name: str, context: Mapping[str, Any]) -> None:
        self.scope.set_context(name, context)

    def set_level(self, level: LogLevel | str | None) -> None:
        self.scope.set_level(level)

    def set_fingerprint(self, fingerprint: list[str] | None) -> None:
        self.scope.set_fingerprint(fingerprint)

    def add_breadcrumb(
        self,
        message: str,
        *,
        category: str = "default",
        type: BreadcrumbType | str = BreadcrumbType.DEFAULT,
        data: Mapping[str, Any] | None = None,
        level: LogLevel | str | None = None,
    ) -> Breadcrumb | None:
        """Record a breadcrumb; returns it, or None if vetoed or closed."""
        if self._closed:
            logger.debug("Breadcrumb dropped", reason=DropReason.CLIENT_CLOSED, category=category)
            return None
        return self.scope.add_breadcrumb(message, category=category, type=type, data=data, level=level)

    def clear_breadcrumbs(self) -> None:
        self.scope.clear_breadcrumbs()

    def with_scope(self, callback: Callable[[Scope], T]) -> T:
        """Run ``callback(scope)``; every scope change is undone afterwards."""
        return self._scopes.with_scope(callback)

    @contextmanager
    def push_scope(self) -> Iterator[Scope]:
        """Context manager form of ``with_scope``."""
        with self._scopes.push_scope() as scope:
            yield scope

    # Tracing

    def start_transaction(self, name: str) -> Transaction:
        return Transaction(name, self)

    # Lifecycle

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued sends to finish.

        Args:
            timeout: Seconds to wait; defaults to ``shutdown_timeout``.

        Returns:
            True if every queued send completed in time.
        """
        if timeout is None:
            timeout = self._settings.shutdown_timeout
        return self._dispatcher.flush(timeout)

    def close(self, timeout: float | None = None) -> bool:
        """Tear down integrations, drain the dispatcher and stop capturing.

        Idempotent.

        Returns:
            True if every queued send completed before shutdown.
        """
        if self._closed:
            return True
        self._closed = True
        teardown_integrations(self._integrations)
        return self._dispatcher.close(timeout)

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
