# src/crumbline/breadcrumbs.py
"""Bounded breadcrumb history.

Breadcrumbs are timestamped records of discrete prior actions (a click, an
HTTP call, a log line). The buffer keeps the most recent ``max_size`` of them
and every assembled event carries a copy.

Key design decisions:
- Ring buffer via deque(maxlen=N): Automatic oldest-first eviction
- Correct eviction counting: Check was_full BEFORE append (deque evicts during)
- Aggregate logging: Log every 100 evictions rather than every one
- Timestamp assigned at insertion, not when the caller built the crumb
"""

from __future__ import annotations

import builtins
from collections import deque
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from crumbline.errors import DropReason
from crumbline.events import LogLevel
from crumbline.hooks import run_hook
from crumbline.logging import get_logger

logger = get_logger(__name__)


class BreadcrumbType(StrEnum):
    """Category tag for a breadcrumb."""

    NAVIGATION = "navigation"
    HTTP = "http"
    CLICK = "click"
    ERROR = "error"
    DEBUG = "debug"
    INFO = "info"
    USER = "user"
    SYSTEM = "system"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class Breadcrumb:
    """A single recorded action. Immutable once inserted."""

    type: BreadcrumbType
    category: str
    message: str
    timestamp: datetime
    data: Mapping[str, Any] | None = None
    level: LogLevel | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.type.value,
            "category": self.category,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.data is not None:
            result["data"] = dict(self.data)
        if self.level is not None:
            result["level"] = self.level.value
        return result


BeforeBreadcrumb = Callable[[Breadcrumb], Any]


class BreadcrumbBuffer:
    """Ring buffer of breadcrumbs that drops the oldest on overflow.

    Thread Safety:
        NOT thread-safe. Scope mutation happens on the caller's thread;
        concurrent writers must synchronize externally.

    Attributes:
        dropped_count: Total number of breadcrumbs evicted due to overflow.

    Example:
        buffer = BreadcrumbBuffer(max_size=100)
        buffer.add("GET /api/items", category="http", type=BreadcrumbType.HTTP)
        recent = buffer.last(5)
    """

    # Log aggregate metrics every N evictions
    _LOG_INTERVAL = 100

    def __init__(
        self,
        max_size: int = 100,
        before_breadcrumb: BeforeBreadcrumb | None = None,
    ) -> None:
        """Initialize the buffer.

        Args:
            max_size: Maximum number of breadcrumbs retained. Defaults to 100.
            before_breadcrumb: Optional hook run on every new breadcrumb. It may
                return a replacement breadcrumb, ``Keep(...)``, or a falsy value
                / ``DROP`` to veto insertion.

        Raises:
            ValueError: If max_size < 1.
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._buffer: deque[Breadcrumb] = deque(maxlen=max_size)
        self._before_breadcrumb = before_breadcrumb
        self._dropped_count: int = 0
        self._last_logged_drop_count: int = 0

    @property
    def max_size(self) -> int:
        maxlen = self._buffer.maxlen
        assert maxlen is not None
        return maxlen

    def add(
        self,
        message: str,
        *,
        category: str = "default",
        type: BreadcrumbType | str = BreadcrumbType.DEFAULT,
        data: Mapping[str, Any] | None = None,
        level: LogLevel | str | None = None,
    ) -> Breadcrumb | None:
        """Stamp, filter and append a breadcrumb.

        Args:
            message: Human-readable description of the action.
            category: Free-form category, e.g. "ui.click" or "console".
            type: Breadcrumb type tag. Unknown strings map to DEFAULT.
            data: Optional structured payload.
            level: Optional severity.

        Returns:
            The stored breadcrumb, or None if ``before_breadcrumb`` vetoed it.
        """
        crumb = Breadcrumb(
            type=_coerce_type(type),
            category=category,
            message=message,
            timestamp=datetime.now(UTC),
            data=data,
            level=_coerce_level(level),
        )
        result = run_hook(self._before_breadcrumb, crumb)
        if result is None:
            logger.debug("Breadcrumb dropped", reason=DropReason.VETOED_BREADCRUMB, category=category)
            return None
        processed = _breadcrumb_from_hook(result, crumb)
        if processed is None:
            logger.warning(
                "Breadcrumb dropped",
                reason=DropReason.VETOED_BREADCRUMB,
                category=category,
                result_type=builtins.type(result).__name__,
            )
            return None
        self.append(processed)
        return processed

    def append(self, breadcrumb: Breadcrumb) -> None:
        """Append an already-built breadcrumb, tracking evictions."""
        was_full = len(self._buffer) == self._buffer.maxlen
        self._buffer.append(breadcrumb)
        if was_full:
            self._dropped_count += 1
            if self._dropped_count - self._last_logged_drop_count >= self._LOG_INTERVAL:
                logger.debug(
                    "Breadcrumb buffer full - oldest evicted",
                    dropped_since_last_log=self._LOG_INTERVAL,
                    dropped_total=self._dropped_count,
                    buffer_size=self._buffer.maxlen,
                )
                self._last_logged_drop_count = self._dropped_count

    def clear(self) -> None:
        """Remove all breadcrumbs."""
        self._buffer.clear()

    def snapshot(self) -> tuple[Breadcrumb, ...]:
        """Return all breadcrumbs, oldest first, without clearing."""
        return tuple(self._buffer)

    def last(self, count: int) -> tuple[Breadcrumb, ...]:
        """Return the newest ``count`` breadcrumbs, oldest first."""
        if count <= 0:
            return ()
        return tuple(self._buffer)[-count:]

    @property
    def dropped_count(self) -> int:
        """Number of breadcrumbs evicted due to overflow."""
        return self._dropped_count

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self) -> Iterator[Breadcrumb]:
        return iter(tuple(self._buffer))


def _coerce_type(value: BreadcrumbType | str) -> BreadcrumbType:
    try:
        return BreadcrumbType(value)
    except ValueError:
        return BreadcrumbType.DEFAULT


def _coerce_level(value: LogLevel | str | None) -> LogLevel | None:
    if value is None:
        return None
    try:
        return LogLevel(value)
    except ValueError:
        return None


def _breadcrumb_from_hook(result: Any, original: Breadcrumb) -> Breadcrumb | None:
    """Accept a hook's replacement: a Breadcrumb, or a mapping of its fields.

    Mapping keys that are missing keep the original's values; the timestamp
    is always the original's. Anything else yields None.
    """
    if isinstance(result, Breadcrumb):
        return result
    if not isinstance(result, Mapping):
        return None
    data = result.get("data", original.data)
    if data is not None and not isinstance(data, Mapping):
        return None
    return Breadcrumb(
        type=_coerce_type(result.get("type", original.type)),
        category=str(result.get("category", original.category)),
        message=str(result.get("message", original.message)),
        timestamp=original.timestamp,
        data=data,
        level=_coerce_level(result.get("level", original.level)),
    )
