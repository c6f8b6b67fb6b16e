# src/crumbline/events.py
"""Event definitions for crumbline.

A LogEvent is the unit crumbline renders and transmits. One is assembled per
log call by the EventPipeline and is frozen from then on: ``before_send``
hooks that want to change an event return ``dataclasses.replace(event, ...)``.

Two fields are deliberately NOT copied at assembly time:
- ``user``: the scope's user dict
- ``extra``: the scope's extras dict

They are shared references, so mutating those dicts in place after an event
was assembled is visible through that event. Tags and breadcrumbs are copied.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from crumbline.breadcrumbs import Breadcrumb


class LogLevel(StrEnum):
    """Severity of an event or breadcrumb, lowest first."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"

    @classmethod
    def from_logging(cls, levelno: int) -> LogLevel:
        """Map a stdlib ``logging`` level number onto a LogLevel."""
        if levelno >= logging.CRITICAL:
            return cls.FATAL
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARN
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.DEBUG


class Release(BaseModel):
    """Release metadata attached to every event.

    Attributes:
        version: Release version string (required)
        name: Application name
        commit: VCS commit identifier
        build: Build identifier
        date: Release date as given by the application
    """

    model_config = {"frozen": True}

    version: str
    name: str | None = None
    commit: str | None = None
    build: str | None = None
    date: str | None = None


@dataclass(frozen=True, slots=True)
class Sdk:
    name: str
    version: str


SDK_INFO = Sdk(name="crumbline", version="0.1.0")
PLATFORM = "python"


@dataclass(frozen=True, slots=True)
class EventHint:
    """Extra information about how an event came to be captured.

    Attributes:
        original_exception: The exception that triggered the capture, when it
            differs from the one passed as ``error``
        synthetic_exception: Exception created only to obtain a traceback
        data: Free-form data for hooks
    """

    original_exception: BaseException | None = None
    synthetic_exception: BaseException | None = None
    data: Any = None


def serialize_error(error: BaseException) -> dict[str, str]:
    """Wire form of an exception: its class name and message."""
    return {"type": type(error).__name__, "value": str(error)}


@dataclass(frozen=True, slots=True)
class LogEvent:
    """A finalized event, ready for rendering and dispatch.

    Attributes:
        level: Effective severity (scope level wins over the call's level)
        message: Message text, truncated to ``max_message_length``
        timestamp: Assembly time (UTC)
        context: Call context merged with scope extras
        tags: Copy of the scope tags
        breadcrumbs: Copy of the breadcrumb history, oldest first
        extra: The scope extras (shared reference)
        error: Captured exception, if any
        user: The scope user (shared reference)
        session: Session id, unless session tracking is off
        release: Configured release
        environment: Configured environment name
        fingerprint: Grouping fingerprint from the scope
        stacktrace: Trimmed traceback text
        platform: Always "python"
        sdk: SDK name and version
    """

    level: LogLevel
    message: str
    timestamp: datetime
    context: dict[str, Any] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    breadcrumbs: tuple[Breadcrumb, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None
    user: dict[str, Any] | None = None
    session: str | None = None
    release: Release | None = None
    environment: str | None = None
    fingerprint: tuple[str, ...] | None = None
    stacktrace: str | None = None
    platform: str = PLATFORM
    sdk: Sdk = SDK_INFO

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON-ready wire form.

        Optional fields that are unset are omitted rather than sent as null.
        """
        payload: dict[str, Any] = {
            "level": self.level.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "tags": self.tags,
            "breadcrumbs": [crumb.to_dict() for crumb in self.breadcrumbs],
            "extra": self.extra,
            "error": serialize_error(self.error) if self.error is not None else None,
            "user": self.user,
            "session": self.session,
            "release": _release_dict(self.release),
            "environment": self.environment,
            "fingerprint": list(self.fingerprint) if self.fingerprint is not None else None,
            "stacktrace": self.stacktrace,
            "platform": self.platform,
            "sdk": asdict(self.sdk),
        }
        return {key: value for key, value in payload.items() if value is not None}


def _release_dict(release: Release | None) -> dict[str, str] | None:
    if release is None:
        return None
    return release.model_dump(exclude_none=True)
