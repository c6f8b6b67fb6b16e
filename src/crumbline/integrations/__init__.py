# src/crumbline/integrations/__init__.py
"""Integration adapters.

An integration feeds an external event source into a Client through a
CaptureHandle. None are enabled by default; pass instances with the
``integrations`` option.
"""

from crumbline.integrations.base import CaptureHandle, setup_integrations, teardown_integrations
from crumbline.integrations.excepthook import ExceptHookIntegration
from crumbline.integrations.logging import BreadcrumbHandler, LoggingIntegration

__all__ = [
    "BreadcrumbHandler",
    "CaptureHandle",
    "ExceptHookIntegration",
    "LoggingIntegration",
    "setup_integrations",
    "teardown_integrations",
]
