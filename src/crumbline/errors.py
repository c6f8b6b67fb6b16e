# src/crumbline/errors.py
"""crumbline exceptions and the drop taxonomy.

Almost nothing in crumbline raises into application code. Events and
breadcrumbs that are filtered out are recorded with a DropReason and logged,
never raised. The exceptions below are for configuration and plugin
discovery only, and the Client catches them during construction.
"""

from enum import StrEnum


class DropReason(StrEnum):
    """Why an event or breadcrumb never reached its destination."""

    IGNORED_ERROR = "ignored_error"
    VETOED_EVENT = "vetoed_event"
    VETOED_BREADCRUMB = "vetoed_breadcrumb"
    SAMPLED_OUT = "sampled_out"
    QUEUE_FULL = "queue_full"
    CLIENT_CLOSED = "client_closed"


class CrumblineError(Exception):
    """Base class for crumbline errors."""


class TransportError(CrumblineError):
    """Raised when a transport cannot be discovered or configured.

    This is raised during transport setup (configure/discovery), NOT during
    send operations. Sends must not raise into application code.

    Attributes:
        transport_name: Name of the transport that failed
        message: Human-readable error description
    """

    def __init__(self, transport_name: str, message: str) -> None:
        self.transport_name = transport_name
        self.message = message
        super().__init__(f"Transport '{transport_name}' failed: {message}")
