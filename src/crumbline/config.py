# src/crumbline/config.py
"""Client configuration.

Settings are validated once, at Client construction, and frozen afterwards.
Options are accepted in snake_case or in the camelCase spelling used by the
browser SDKs (``sampleRate``, ``maxBreadcrumbs``, ...).

Malformed configuration never prevents a Client from starting:
``Settings.from_options()`` drops every option that fails validation, logs
which ones were dropped, and lets the defaults fill the gaps.
"""

from __future__ import annotations

import re
import socket
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from crumbline.breadcrumbs import Breadcrumb
from crumbline.events import LogEvent, Release
from crumbline.logging import get_logger

logger = get_logger(__name__)

PRODUCTION = "production"


class Settings(BaseModel):
    """Recognized client options with their defaults.

    ``debug`` and ``enable_console_logging`` default to True everywhere
    except ``environment="production"``.
    """

    model_config = {
        "frozen": True,
        "arbitrary_types_allowed": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }

    dsn: str | None = Field(default=None, description="Collector endpoint URL; no DSN disables transport")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=True, description="Log crumbline's own diagnostics (transport failures etc.)")
    enable_console_logging: bool = Field(default=True, description="Render every event to the console")
    release: Release | None = Field(default=None, description="Release metadata attached to events")

    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0, description="Probability an event is transmitted")
    traces_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Reserved for transaction sampling; not consulted by the timing harness",
    )
    max_breadcrumbs: int = Field(default=100, gt=0, description="Breadcrumb history size")
    max_message_length: int = Field(default=8192, ge=3, description="Longest message kept before truncation")
    attach_stacktrace: bool = Field(default=True, description="Attach trimmed tracebacks to events")
    ignore_errors: list[str | re.Pattern[str]] = Field(
        default_factory=list,
        description="Substrings or compiled patterns; matching exceptions are dropped",
    )

    transport: str = Field(default="async", description="Delivery mechanism: beacon, async or sync")
    transport_timeout: float = Field(default=5.0, gt=0, description="Per-request network timeout in seconds")
    transport_queue_size: int = Field(default=1000, gt=0, description="Pending sends before new events are dropped")
    shutdown_timeout: float = Field(default=5.0, ge=0, description="Seconds close() waits for in-flight sends")
    server_name: str = Field(default_factory=socket.gethostname, description="Host name sent as server_name")

    before_send: Callable[[LogEvent], Any] | None = Field(default=None, description="Event hook; may veto")
    before_breadcrumb: Callable[[Breadcrumb], Any] | None = Field(default=None, description="Breadcrumb hook; may veto")
    integrations: list[Any] = Field(default_factory=list, description="Adapters set up once, in order")

    default_tags: dict[str, str] = Field(default_factory=dict)
    default_context: dict[str, Any] = Field(default_factory=dict)
    initial_scope: dict[str, Any] = Field(default_factory=dict)

    session_timeout_ms: int = Field(default=30 * 60 * 1000, gt=0)
    auto_session_tracking: bool = Field(default=True, description="Attach a session id to events")
    send_default_pii: bool = Field(default=False, description="Keep ip_address in user data")

    @model_validator(mode="before")
    @classmethod
    def _environment_defaults(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        is_production = data.get("environment") == PRODUCTION
        for field_name in ("debug", "enable_console_logging"):
            if field_name not in data and to_camel(field_name) not in data:
                data[field_name] = not is_production
        return data

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None, **kwargs: Any) -> Settings:
        """Build Settings, discarding invalid options instead of failing.

        Args:
            options: Option mapping (snake_case or camelCase keys)
            **kwargs: Further options, merged over ``options``

        Returns:
            Validated Settings. Options that failed validation take their
            default values.
        """
        raw: dict[str, Any] = {**(options or {}), **kwargs}
        rejected: list[str] = []
        # Each pass removes at least one offending key, so this terminates.
        while True:
            try:
                settings = cls.model_validate(raw)
            except ValidationError as e:
                offending = {str(error["loc"][0]) for error in e.errors() if error["loc"]}
                removed = _remove_options(raw, offending)
                if not removed:
                    logger.warning("Invalid configuration, using defaults", error=str(e))
                    return cls.model_validate({})
                rejected.extend(removed)
                continue
            if rejected:
                logger.warning(
                    "Invalid configuration options ignored",
                    options=sorted(rejected),
                    hint="Defaults were used for these options",
                )
            return settings


def _remove_options(raw: dict[str, Any], offending: set[str]) -> list[str]:
    """Remove offending options (by field name or alias) from ``raw``."""
    removed: list[str] = []
    for field_name, field_info in Settings.model_fields.items():
        names = {field_name, field_info.alias or to_camel(field_name)}
        if names & offending:
            for name in names:
                if name in raw:
                    del raw[name]
                    removed.append(name)
    return removed
