# src/crumbline/integrations/excepthook.py
"""Uncaught exception integration.

Chains ``sys.excepthook`` and ``threading.excepthook``: an exception that
escapes the main thread or a worker thread is captured at fatal level, then
handed on to the hook that was installed before. KeyboardInterrupt and
SystemExit are passed on without being captured.
"""

from __future__ import annotations

import sys
import threading
from types import TracebackType
from typing import Any

from crumbline.events import EventHint, LogLevel
from crumbline.integrations.base import CaptureHandle

_NOT_CAPTURED = (KeyboardInterrupt, SystemExit)


class ExceptHookIntegration:
    """Capture uncaught exceptions from the main thread and from threads."""

    name = "excepthook"

    def __init__(self, threads: bool = True) -> None:
        self._threads = threads
        self._handle: CaptureHandle | None = None
        self._previous_excepthook: Any = None
        self._previous_threading_excepthook: Any = None

    def setup_once(self, handle: CaptureHandle) -> None:
        self._handle = handle
        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._excepthook
        if self._threads:
            self._previous_threading_excepthook = threading.excepthook
            threading.excepthook = self._threading_excepthook

    def teardown(self) -> None:
        if sys.excepthook == self._excepthook:
            sys.excepthook = self._previous_excepthook
        if self._threads and threading.excepthook == self._threading_excepthook:
            threading.excepthook = self._previous_threading_excepthook

    def _capture(self, error: BaseException | None, context: dict[str, Any]) -> None:
        if self._handle is None or error is None or isinstance(error, _NOT_CAPTURED):
            return
        self._handle.capture_exception(
            error,
            context,
            EventHint(original_exception=error, data={"handled": False, "mechanism": context["mechanism"]}),
            level=LogLevel.FATAL,
        )

    def _excepthook(
        self,
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            self._capture(exc_value, {"mechanism": "excepthook"})
        finally:
            self._previous_excepthook(exc_type, exc_value, exc_tb)

    def _threading_excepthook(self, args: threading.ExceptHookArgs) -> None:
        thread_name = args.thread.name if args.thread is not None else None
        try:
            self._capture(args.exc_value, {"mechanism": "threading.excepthook", "thread": thread_name})
        finally:
            self._previous_threading_excepthook(args)
