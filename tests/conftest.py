# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

from __future__ import annotations

import io
import os
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings
from rich.console import Console

import crumbline
from crumbline.client import Client
from tests.fixtures import COLLECTOR_URL, RecordingTransportsPlugin

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


@pytest.fixture(autouse=True)
def _reset_module_client() -> Iterator[None]:
    """Close whatever client a test bound through crumbline.init()."""
    yield
    crumbline.close(timeout=1.0)


@pytest.fixture
def recording_console() -> Console:
    """rich Console that records output instead of writing to a terminal."""
    return Console(file=io.StringIO(), record=True, width=120, color_system=None)


@pytest.fixture
def make_client() -> Iterator[Callable[..., Client]]:
    """Factory for Clients wired to the in-memory recording transport.

    Defaults: DSN set, "recording" (blocking) transport, console off.
    Every client built here is closed at teardown.
    """
    clients: list[Client] = []

    def _make(**options: Any) -> Client:
        options.setdefault("dsn", COLLECTOR_URL)
        options.setdefault("transport", "recording")
        options.setdefault("enable_console_logging", False)
        client = Client(options, transport_plugins=[RecordingTransportsPlugin()])
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close(timeout=1.0)
