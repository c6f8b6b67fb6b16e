# tests/fixtures.py
"""Reusable test doubles for crumbline.

These provide:
1. RecordingTransport - blocking in-memory transport that stores payloads
2. QueuedRecordingTransport - non-blocking variant, optionally gated
3. HTTPLoggingTransport - logs an httpx-style request line on every send
4. FailingTransport - raises on every send
5. RecordingTransportsPlugin - pluggy plugin registering all of the above
6. make_event() - LogEvent builder with sensible defaults
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime
from typing import Any

from crumbline.events import LogEvent, LogLevel
from crumbline.hookspecs import hookimpl

COLLECTOR_URL = "https://collector.test/api/logs"


class RecordingTransport:
    """In-memory transport capturing every body it is asked to send."""

    _name = "recording"
    _blocking = True

    def __init__(self) -> None:
        self.sent: list[tuple[str, bytes]] = []
        self.config: dict[str, Any] | None = None
        self.close_count = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def blocking(self) -> bool:
        return self._blocking

    def configure(self, config: dict[str, Any]) -> None:
        self.config = config

    def send(self, url: str, body: bytes) -> None:
        self.sent.append((url, body))

    def close(self) -> None:
        self.close_count += 1

    @property
    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(body) for _, body in self.sent]

    @property
    def messages(self) -> list[str]:
        return [payload["message"] for payload in self.payloads]


class QueuedRecordingTransport(RecordingTransport):
    """Non-blocking recording transport; sends run on the dispatcher worker.

    When ``gate`` is set, each send waits for it before recording.
    """

    _name = "recording-queued"
    _blocking = False

    def __init__(self) -> None:
        super().__init__()
        self.gate: threading.Event | None = None
        self._lock = threading.Lock()

    def send(self, url: str, body: bytes) -> None:
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        with self._lock:
            self.sent.append((url, body))


class HTTPLoggingTransport(RecordingTransport):
    """Blocking transport that logs each request the way httpx does."""

    _name = "recording-http-logging"

    def send(self, url: str, body: bytes) -> None:
        logging.getLogger("httpx").warning('HTTP Request: POST %s "HTTP/1.1 200 OK"', url)
        super().send(url, body)


class FailingTransport(RecordingTransport):
    """Transport whose every send raises."""

    _name = "failing"

    def send(self, url: str, body: bytes) -> None:
        raise ConnectionError("collector unreachable")


class RecordingTransportsPlugin:
    @hookimpl
    def crumbline_get_transports(self) -> list[type]:
        return [RecordingTransport, QueuedRecordingTransport, HTTPLoggingTransport, FailingTransport]


def make_event(
    message: str = "test event",
    level: LogLevel = LogLevel.INFO,
    **fields: Any,
) -> LogEvent:
    """Create a LogEvent with a fixed timestamp."""
    fields.setdefault("timestamp", datetime(2026, 1, 30, 12, 0, 0, tzinfo=UTC))
    return LogEvent(level=level, message=message, **fields)
