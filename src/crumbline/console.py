# src/crumbline/console.py
"""Developer-facing console rendering of events.

Each event becomes one rich panel: an emoji, level and local-time header, a
border coloured by level, and the message followed by whichever of context,
tags, user, recent breadcrumbs, error and session the event carries.

Rendering is a side channel. It never changes the event and a rendering
failure never stops the event from being dispatched.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.pretty import Pretty
from rich.text import Text

from crumbline.events import LogEvent, LogLevel, serialize_error
from crumbline.logging import get_logger

logger = get_logger(__name__)

EMOJIS: dict[LogLevel, str] = {
    LogLevel.DEBUG: "🔍",
    LogLevel.INFO: "ℹ️",
    LogLevel.WARN: "⚠️",
    LogLevel.ERROR: "❌",
    LogLevel.FATAL: "💀",
}

COLORS: dict[LogLevel, str] = {
    LogLevel.DEBUG: "#6B7280",
    LogLevel.INFO: "#3B82F6",
    LogLevel.WARN: "#F59E0B",
    LogLevel.ERROR: "#EF4444",
    LogLevel.FATAL: "#7C2D12",
}

# Only the tail of the breadcrumb history is shown
BREADCRUMB_TAIL = 5


class ConsoleRenderer:
    """Render events as coloured panels when console logging is enabled.

    Example:
        >>> renderer = ConsoleRenderer(enabled=True)
        >>> renderer.render(event)  # prints a panel to stderr
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        """Initialize the renderer.

        Args:
            enabled: When False, render() does nothing.
            console: rich Console to print to. Defaults to one on stderr.
        """
        self._enabled = enabled
        self._console = console or Console(stderr=True)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def render(self, event: LogEvent) -> None:
        """Print ``event``. Never raises."""
        if not self._enabled:
            return
        try:
            self._console.print(self.build_panel(event))
        except Exception as e:
            logger.warning("Failed to render event to console", error=str(e), level=event.level.value)

    def build_panel(self, event: LogEvent) -> Panel:
        color = COLORS[event.level]
        local_time = event.timestamp.astimezone().strftime("%X")
        title = Text(f"{EMOJIS[event.level]} [{event.level.value.upper()}] {local_time}:", style=f"bold {color}")

        parts: list[RenderableType] = [Text(event.message, style=color)]
        if event.context:
            parts.extend(_section("📋 Context:", event.context))
        if event.tags:
            parts.extend(_section("🏷️ Tags:", event.tags))
        if event.user:
            parts.extend(_section("👤 User:", event.user))
        if event.breadcrumbs:
            recent = [crumb.to_dict() for crumb in event.breadcrumbs[-BREADCRUMB_TAIL:]]
            parts.extend(_section("🍞 Breadcrumbs:", recent))
        if event.error is not None:
            error = serialize_error(event.error)
            parts.append(Text(f"💥 Error: {error['type']}: {error['value']}", style="bold red"))
        if event.session:
            parts.append(Text(f"🔐 Session: {event.session}", style="dim"))

        return Panel(
            Group(*parts),
            title=title,
            title_align="left",
            border_style=color,
            padding=(0, 1),
        )


def _section(label: str, value: Any) -> list[RenderableType]:
    return [Text(label, style="bold"), Pretty(value)]
