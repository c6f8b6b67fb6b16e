# src/crumbline/integrations/logging.py
"""Stdlib logging integration.

Attaches a handler to a stdlib logger (the root logger by default). Every
record at or above ``level`` becomes a breadcrumb in category "logging";
records at or above ``event_level`` that carry exception info are also
captured as exception events.

Usage:
    import logging
    import crumbline
    from crumbline.integrations import LoggingIntegration

    crumbline.init(dsn=..., integrations=[LoggingIntegration()])
    logging.getLogger("app").info("cart loaded")  # breadcrumb
"""

import logging

from crumbline.breadcrumbs import BreadcrumbType
from crumbline.events import EventHint, LogLevel
from crumbline.integrations.base import CaptureHandle
from crumbline.logging import LOGGER_NAME, in_transport_activity


def _breadcrumb_type(levelno: int) -> BreadcrumbType:
    if levelno >= logging.ERROR:
        return BreadcrumbType.ERROR
    if levelno < logging.INFO:
        return BreadcrumbType.DEBUG
    return BreadcrumbType.INFO


def _is_own_record(record: logging.LogRecord) -> bool:
    if in_transport_activity():
        return True
    return record.name == LOGGER_NAME or record.name.startswith(f"{LOGGER_NAME}.")


class BreadcrumbHandler(logging.Handler):
    """A logging.Handler that feeds records into a CaptureHandle.

    The exception event (if any) is captured before the record's own
    breadcrumb is added, so an event never lists itself in its history.
    """

    def __init__(self, handle: CaptureHandle, level: int = logging.INFO, event_level: int = logging.ERROR) -> None:
        super().__init__(level)
        self._handle = handle
        self._event_level = event_level

    def emit(self, record: logging.LogRecord) -> None:
        if _is_own_record(record):
            return
        try:
            message = record.getMessage()
            level = LogLevel.from_logging(record.levelno)
            if record.levelno >= self._event_level and record.exc_info and record.exc_info[1] is not None:
                error = record.exc_info[1]
                self._handle.capture_exception(
                    error,
                    {"logger": record.name, "log_message": message},
                    EventHint(original_exception=error, data={"mechanism": "logging"}),
                    level=level,
                )
            self._handle.add_breadcrumb(
                message,
                category="logging",
                type=_breadcrumb_type(record.levelno),
                data={"logger": record.name},
                level=level,
            )
        except Exception:
            self.handleError(record)


class LoggingIntegration:
    """Record stdlib log records as breadcrumbs and error events."""

    name = "logging"

    def __init__(
        self,
        level: int = logging.INFO,
        event_level: int = logging.ERROR,
        logger: str | None = None,
    ) -> None:
        """Initialize the integration.

        Args:
            level: Minimum record level turned into a breadcrumb.
            event_level: Minimum level at which records with exception info
                are captured as events.
            logger: Name of the logger to attach to; None means the root logger.
        """
        self._level = level
        self._event_level = event_level
        self._logger_name = logger
        self._handler: BreadcrumbHandler | None = None

    @property
    def handler(self) -> BreadcrumbHandler | None:
        return self._handler

    def setup_once(self, handle: CaptureHandle) -> None:
        self._handler = BreadcrumbHandler(handle, self._level, self._event_level)
        logging.getLogger(self._logger_name).addHandler(self._handler)

    def teardown(self) -> None:
        if self._handler is not None:
            logging.getLogger(self._logger_name).removeHandler(self._handler)
            self._handler = None
