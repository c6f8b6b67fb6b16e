# src/crumbline/scope.py
"""Scope management: the contextual state attached to future events.

A Client owns exactly one live Scope. Setters mutate it in place; the
EventPipeline reads it when assembling an event.

Temporary changes go through ``ScopeStore.push_scope()`` (or the callback
form ``with_scope()``). On entry the store pushes a cloned frame of the
current scope onto a stack; on exit, normal or exceptional, the frame is
popped and written back into the live scope. Frames copy the tags, extras,
contexts, user and fingerprint containers, so in-place mutations made inside
the block are rolled back and nested blocks compose. Objects stored as extra
values are not copied.

The breadcrumb buffer is never part of a frame: breadcrumbs recorded inside
a block stay in the history after it exits.
"""

from __future__ import annotations

import platform
import socket
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from crumbline.breadcrumbs import BeforeBreadcrumb, Breadcrumb, BreadcrumbBuffer, BreadcrumbType
from crumbline.events import LogLevel
from crumbline.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def default_contexts() -> dict[str, dict[str, Any]]:
    """Named contexts describing the host process, attached to every scope."""
    return {
        "runtime": {
            "name": platform.python_implementation(),
            "version": platform.python_version(),
        },
        "os": {
            "name": platform.system(),
            "version": platform.release(),
        },
        "device": {
            "hostname": socket.gethostname(),
            "arch": platform.machine(),
            "timezone": time.tzname[0],
        },
    }


@dataclass(slots=True)
class Scope:
    """Mutable contextual state.

    Attributes:
        tags: String tags copied into every event
        extras: Extra data merged into every event's context
        contexts: Named context dicts (runtime, os, device, ...)
        breadcrumbs: Bounded breadcrumb history
        user: Current user, if identified
        fingerprint: Grouping fingerprint override
        level: Level override applied to every event
    """

    tags: dict[str, str] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)
    contexts: dict[str, dict[str, Any]] = field(default_factory=dict)
    breadcrumbs: BreadcrumbBuffer = field(default_factory=BreadcrumbBuffer)
    user: dict[str, Any] | None = None
    fingerprint: list[str] | None = None
    level: LogLevel | None = None

    def set_user(self, user: Mapping[str, Any] | None) -> None:
        """Merge ``user`` into the current user; None clears it."""
        if user is None:
            self.user = None
            return
        self.user = {**(self.user or {}), **user}

    def set_tag(self, key: str, value: str) -> None:
        self.tags[key] = value

    def set_tags(self, tags: Mapping[str, str]) -> None:
        self.tags.update(tags)

    def set_extra(self, key: str, value: Any) -> None:
        self.extras[key] = value

    def set_extras(self, extras: Mapping[str, Any]) -> None:
        self.extras.update(extras)

    def set_context(self, name: str, context: Mapping[str, Any]) -> None:
        self.contexts[name] = dict(context)

    def set_level(self, level: LogLevel | str | None) -> None:
        if level is None:
            self.level = None
            return
        try:
            self.level = LogLevel(level)
        except ValueError:
            logger.warning("Unknown level ignored", level=level, valid=[lvl.value for lvl in LogLevel])

    def set_fingerprint(self, fingerprint: list[str] | None) -> None:
        self.fingerprint = list(fingerprint) if fingerprint is not None else None

    def add_breadcrumb(
        self,
        message: str,
        *,
        category: str = "default",
        type: BreadcrumbType | str = BreadcrumbType.DEFAULT,
        data: Mapping[str, Any] | None = None,
        level: LogLevel | str | None = None,
    ) -> Breadcrumb | None:
        return self.breadcrumbs.add(message, category=category, type=type, data=data, level=level)

    def clear_breadcrumbs(self) -> None:
        self.breadcrumbs.clear()

    def clone(self) -> Scope:
        """Copy with independent containers.

        Values inside extras and the breadcrumb buffer itself are shared.
        """
        return Scope(
            tags=dict(self.tags),
            extras=dict(self.extras),
            contexts={name: dict(context) for name, context in self.contexts.items()},
            breadcrumbs=self.breadcrumbs,
            user=dict(self.user) if self.user is not None else None,
            fingerprint=list(self.fingerprint) if self.fingerprint is not None else None,
            level=self.level,
        )

    def restore(self, frame: Scope) -> None:
        """Overwrite every field except the breadcrumbs with the frame's."""
        self.tags = frame.tags
        self.extras = frame.extras
        self.contexts = frame.contexts
        self.user = frame.user
        self.fingerprint = frame.fingerprint
        self.level = frame.level


class ScopeStore:
    """Owns the live Scope and the stack of saved frames.

    Example:
        >>> store = ScopeStore()
        >>> with store.push_scope() as scope:
        ...     scope.set_tag("feature", "checkout")
        >>> "feature" in store.scope.tags
        False
    """

    def __init__(
        self,
        *,
        max_breadcrumbs: int = 100,
        before_breadcrumb: BeforeBreadcrumb | None = None,
        default_tags: Mapping[str, str] | None = None,
        default_context: Mapping[str, Any] | None = None,
        initial_scope: Mapping[str, Any] | None = None,
    ) -> None:
        self._scope = Scope(
            tags=dict(default_tags or {}),
            extras=dict(default_context or {}),
            contexts=default_contexts(),
            breadcrumbs=BreadcrumbBuffer(max_breadcrumbs, before_breadcrumb),
        )
        self._frames: list[Scope] = []
        if initial_scope:
            self._apply_initial_scope(initial_scope)

    @property
    def scope(self) -> Scope:
        """The live scope."""
        return self._scope

    @property
    def depth(self) -> int:
        """Number of currently open ``push_scope`` blocks."""
        return len(self._frames)

    @contextmanager
    def push_scope(self) -> Iterator[Scope]:
        """Temporarily modify the live scope; restored on exit."""
        self._frames.append(self._scope.clone())
        try:
            yield self._scope
        finally:
            self._scope.restore(self._frames.pop())

    def with_scope(self, callback: Callable[[Scope], T]) -> T:
        """Run ``callback(scope)`` inside ``push_scope()``; returns its result.

        Exceptions raised by the callback propagate after the scope is restored.
        """
        with self.push_scope() as scope:
            return callback(scope)

    def _apply_initial_scope(self, initial: Mapping[str, Any]) -> None:
        for key, value in initial.items():
            try:
                self._apply_initial_key(key, value)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning("Malformed initial_scope entry ignored", key=key, error=str(e))

    def _apply_initial_key(self, key: str, value: Any) -> None:
        scope = self._scope
        match key:
            case "user":
                scope.user = dict(value) if value is not None else None
            case "tags":
                scope.tags = dict(value)
            case "extras":
                scope.extras = dict(value)
            case "contexts":
                scope.contexts = {name: dict(context) for name, context in value.items()}
            case "fingerprint":
                scope.set_fingerprint(value)
            case "level":
                scope.set_level(value)
            case "breadcrumbs":
                for crumb in value:
                    if isinstance(crumb, Breadcrumb):
                        scope.breadcrumbs.append(crumb)
                    else:
                        scope.add_breadcrumb(**crumb)
            case _:
                logger.warning("Unknown initial_scope key ignored", key=key)
