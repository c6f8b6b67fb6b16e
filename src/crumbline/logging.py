# src/crumbline/logging.py
"""Internal diagnostics logging for crumbline.

crumbline's own modules log through ``get_logger(__name__)``: a structlog
BoundLogger wrapped around the stdlib logger of the same name, with its own
processor chain. Records are rendered by a ProcessorFormatter handler
attached to the ``crumbline`` logger.

Global structlog configuration and the root logger belong to the host
application and are never touched.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

LOGGER_NAME = "crumbline"
_HANDLER_NAME = "crumbline-diagnostics"

# Set while a transport delivers a payload on the current thread
_transport_active: ContextVar[bool] = ContextVar("crumbline_transport_active", default=False)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove the bookkeeping fields ProcessorFormatter always adds."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]


def get_logger(name: str) -> Any:
    """structlog logger bound to the stdlib logger ``name``.

    Level checks happen before any processing, so disabled debug calls
    cost almost nothing.
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
    )


@contextmanager
def transport_activity() -> Iterator[None]:
    """Mark everything logged inside the block as crumbline's own traffic.

    Covers records from the HTTP stack (httpx, httpcore) while it posts
    to the DSN, so integrations can skip them.
    """
    token = _transport_active.set(True)
    try:
        yield
    finally:
        _transport_active.reset(token)


def in_transport_activity() -> bool:
    return _transport_active.get()


def configure_logging(*, debug: bool = False, stream: Any = None) -> logging.Logger:
    """Configure crumbline's diagnostics output.

    Safe to call repeatedly: the handler is installed once and only the level
    changes on later calls.

    Args:
        debug: DEBUG level when True, WARNING otherwise.
        stream: Destination for diagnostics. Defaults to stderr.

    Returns:
        The ``crumbline`` stdlib logger.
    """
    package_logger = logging.getLogger(LOGGER_NAME)
    handler = next((h for h in package_logger.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(
            ProcessorFormatter(
                processors=[_remove_internal_fields, structlog.dev.ConsoleRenderer(colors=False)],
                foreign_pre_chain=_shared_processors(),
            )
        )
        package_logger.addHandler(handler)

    # Diagnostics must not reach a LoggingIntegration on the root logger
    package_logger.propagate = False
    package_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    return package_logger
