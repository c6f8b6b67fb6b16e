# src/crumbline/session.py
"""Session lifecycle.

A session correlates the events of one continuous period of activity. The
session is renewed lazily: there is no background timer, so a process that
stays idle past the timeout keeps its old session id until its next log
call, at which point the id jumps.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from crumbline.logging import get_logger

logger = get_logger(__name__)


def generate_session_id() -> str:
    """Unique-with-overwhelming-probability correlation id (not a secret)."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True, slots=True)
class Session:
    """An active session.

    Attributes:
        id: Correlation id carried by every event
        started_at: Clock reading (seconds) when the session began
    """

    id: str
    started_at: float


class SessionManager:
    """Issues and renews the single active session of a Client.

    Example:
        >>> manager = SessionManager(timeout_ms=30 * 60 * 1000)
        >>> first = manager.current_session()
        >>> manager.current_session() is first
        True
    """

    def __init__(
        self,
        timeout_ms: int = 30 * 60 * 1000,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Start the first session.

        Args:
            timeout_ms: Session lifetime in milliseconds, measured from its start.
            clock: Monotonic clock returning seconds; injectable for tests.
        """
        self._timeout_ms = timeout_ms
        self._clock = clock
        self._session = Session(id=generate_session_id(), started_at=clock())

    @property
    def session(self) -> Session:
        """The current session without checking expiry."""
        return self._session

    def is_expired(self) -> bool:
        elapsed_ms = (self._clock() - self._session.started_at) * 1000
        return elapsed_ms > self._timeout_ms

    def current_session(self) -> Session:
        """Return the active session, renewing it first if it has expired."""
        if self.is_expired():
            previous = self._session
            self._session = Session(id=generate_session_id(), started_at=self._clock())
            logger.debug("Session renewed", previous_session=previous.id, session=self._session.id)
        return self._session
