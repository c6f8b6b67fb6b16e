# src/crumbline/pipeline.py
"""EventPipeline turns a log call into a finalized, dispatched event.

Processing order for one call (``capture``):
1. Ignore filter: an error matching ``ignore_errors`` stops everything
2. Session refresh (lazy renewal)
3. Assembly: level, truncated message, merged context, copied tags and
   breadcrumbs, trimmed stacktrace
4. Console rendering (side channel, happens before the veto)
5. ``before_send`` hook: may replace or veto the event
6. Dispatch: sampling, then transport

Hook exceptions are not caught here; they propagate to whoever made the
log call.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from crumbline.config import Settings
from crumbline.console import ConsoleRenderer
from crumbline.dispatcher import TransportDispatcher
from crumbline.errors import DropReason
from crumbline.events import EventHint, LogEvent, LogLevel
from crumbline.filtering import extract_stacktrace, should_ignore_error
from crumbline.hooks import run_hook
from crumbline.logging import get_logger
from crumbline.scope import ScopeStore
from crumbline.session import SessionManager

logger = get_logger(__name__)

ELLIPSIS = "..."

# User keys that count as personally identifying
PII_USER_KEYS = frozenset({"ip_address"})


def truncate_message(message: str, max_length: int) -> str:
    """Cut ``message`` to ``max_length`` characters, ending in "..." if cut.

    Example:
        >>> truncate_message("abcdefgh", 6)
        'abc...'
    """
    if len(message) <= max_length:
        return message
    return message[: max_length - len(ELLIPSIS)] + ELLIPSIS


def coerce_level(level: LogLevel | str) -> LogLevel:
    try:
        return LogLevel(level)
    except ValueError:
        logger.warning("Unknown level, using info", level=level)
        return LogLevel.INFO


class EventPipeline:
    """Assembles events from log calls and routes them to renderer and dispatcher."""

    def __init__(
        self,
        settings: Settings,
        scopes: ScopeStore,
        sessions: SessionManager,
        renderer: ConsoleRenderer,
        dispatcher: TransportDispatcher,
    ) -> None:
        self._settings = settings
        self._scopes = scopes
        self._sessions = sessions
        self._renderer = renderer
        self._dispatcher = dispatcher

    def assemble(
        self,
        level: LogLevel | str,
        message: str,
        context: Mapping[str, Any] | None = None,
        error: BaseException | None = None,
        hint: EventHint | None = None,
    ) -> LogEvent | None:
        """Build a LogEvent from a log call and the current scope.

        Returns:
            The assembled event, or None if the error is ignored.
        """
        settings = self._settings
        candidate = error if error is not None else (hint.original_exception if hint else None)
        if candidate is not None and should_ignore_error(candidate, settings.ignore_errors):
            logger.debug("Event dropped", reason=DropReason.IGNORED_ERROR, error_type=type(candidate).__name__)
            return None

        session = self._sessions.current_session() if settings.auto_session_tracking else None
        scope = self._scopes.scope

        stack_source = error if error is not None else (hint.synthetic_exception if hint else None)
        return LogEvent(
            level=scope.level or coerce_level(level),
            message=truncate_message(str(message), settings.max_message_length),
            timestamp=datetime.now(UTC),
            context={**(context or {}), **scope.extras},
            tags=dict(scope.tags),
            breadcrumbs=scope.breadcrumbs.snapshot(),
            extra=scope.extras,
            error=error,
            user=self._user_for_event(scope.user),
            session=session.id if session is not None else None,
            release=settings.release,
            environment=settings.environment,
            fingerprint=tuple(scope.fingerprint) if scope.fingerprint is not None else None,
            stacktrace=extract_stacktrace(stack_source) if settings.attach_stacktrace else None,
        )

    def _user_for_event(self, user: dict[str, Any] | None) -> dict[str, Any] | None:
        if user is None or self._settings.send_default_pii or not PII_USER_KEYS & user.keys():
            return user
        return {key: value for key, value in user.items() if key not in PII_USER_KEYS}

    def apply_before_send(self, event: LogEvent) -> LogEvent | None:
        """Run the ``before_send`` hook; None means the event was vetoed.

        A replacement that is not a LogEvent is treated as a veto.
        """
        result = run_hook(self._settings.before_send, event)
        if result is None:
            logger.debug("Event dropped", reason=DropReason.VETOED_EVENT, level=event.level.value)
            return None
        if not isinstance(result, LogEvent):
            logger.warning(
                "Event dropped",
                reason=DropReason.VETOED_EVENT,
                level=event.level.value,
                result_type=type(result).__name__,
            )
            return None
        return result

    def capture(
        self,
        level: LogLevel | str,
        message: str,
        context: Mapping[str, Any] | None = None,
        error: BaseException | None = None,
        hint: EventHint | None = None,
    ) -> LogEvent | None:
        """Run the full pipeline for one log call.

        Returns:
            The event handed to the dispatcher (after ``before_send``), or
            None if it was ignored or vetoed. A returned event may still be
            sampled out by the dispatcher.
        """
        event = self.assemble(level, message, context, error, hint)
        if event is None:
            return None
        self._renderer.render(event)
        final = self.apply_before_send(event)
        if final is None:
            return None
        self._dispatcher.send(final)
        return final
