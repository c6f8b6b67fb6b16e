# src/crumbline/integrations/base.py
"""The capture handle given to integrations, and integration setup.

An integration never sees the Client. It receives a CaptureHandle that
exposes exactly three entry points: add_breadcrumb, capture_exception and
capture_message. Once the Client is closed, or replaced by a later
``crumbline.init()``, calls through its handle are dropped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from crumbline.breadcrumbs import BreadcrumbType
from crumbline.events import EventHint, LogLevel
from crumbline.logging import get_logger
from crumbline.protocols import IntegrationProtocol

if TYPE_CHECKING:
    from crumbline.client import Client

logger = get_logger(__name__)


class CaptureHandle:
    """Narrow capability over a Client, handed to ``setup_once``."""

    __slots__ = ("_client",)

    def __init__(self, client: Client) -> None:
        self._client = client

    @property
    def closed(self) -> bool:
        """True once the Client behind this handle has been closed."""
        return self._client.closed

    def add_breadcrumb(
        self,
        message: str,
        *,
        category: str = "default",
        type: BreadcrumbType | str = BreadcrumbType.DEFAULT,
        data: Mapping[str, Any] | None = None,
        level: LogLevel | str | None = None,
    ) -> None:
        self._client.add_breadcrumb(message, category=category, type=type, data=data, level=level)

    def capture_exception(
        self,
        error: BaseException,
        context: Mapping[str, Any] | None = None,
        hint: EventHint | None = None,
        *,
        level: LogLevel | str = LogLevel.ERROR,
    ) -> None:
        self._client.capture_exception(error, context, hint, level=level)

    def capture_message(
        self,
        message: str,
        level: LogLevel | str = LogLevel.INFO,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self._client.capture_message(message, level, context)


def setup_integrations(
    integrations: Iterable[IntegrationProtocol],
    handle: CaptureHandle,
) -> list[IntegrationProtocol]:
    """Call ``setup_once`` on each integration, in order.

    A failing integration is logged and skipped; the rest still run.

    Returns:
        The integrations whose setup succeeded.
    """
    installed: list[IntegrationProtocol] = []
    for integration in integrations:
        name = getattr(integration, "name", type(integration).__name__)
        try:
            integration.setup_once(handle)
        except Exception as e:
            logger.error(
                "Integration setup failed",
                integration=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            continue
        installed.append(integration)
        logger.debug("Integration installed", integration=name)
    return installed


def teardown_integrations(integrations: Iterable[IntegrationProtocol]) -> None:
    """Undo installed integrations that support it (``teardown()``)."""
    for integration in integrations:
        teardown = getattr(integration, "teardown", None)
        if teardown is None:
            continue
        try:
            teardown()
        except Exception as e:
            logger.warning("Integration teardown failed", integration=integration.name, error=str(e))
