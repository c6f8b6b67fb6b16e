# src/crumbline/tracing.py
"""Transaction and span timing harness.

A Transaction measures a named operation; Spans measure its sub-operations.
Finishing either emits an ordinary event through the Client, so timing
events are rendered, hooked and sampled like any other. ``traces_sample_rate``
is not consulted here.

finish() is terminal but not idempotent: finishing twice emits two events.

Usage:
    with client.start_transaction("checkout") as transaction:
        with transaction.start_span("charge_card"):
            charge()
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from crumbline.client import Client


def _elapsed_ms(started_at: float) -> float:
    return (time.perf_counter() - started_at) * 1000


class Span:
    """A timed sub-operation; emits a debug event on finish."""

    def __init__(self, operation: str, client: Client) -> None:
        self.operation = operation
        self.started_at = time.perf_counter()
        self._client = client

    def finish(self) -> float:
        """Emit the span duration event.

        Returns:
            Elapsed time in milliseconds.
        """
        duration = _elapsed_ms(self.started_at)
        self._client.debug(
            f"Span {self.operation} completed",
            {"span": self.operation, "duration": duration},
        )
        return duration

    def __enter__(self) -> Span:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.finish()


class Transaction:
    """A named timed operation with ordered child spans."""

    def __init__(self, name: str, client: Client) -> None:
        self.name = name
        self.started_at = time.perf_counter()
        self.spans: list[Span] = []
        self._client = client

    def start_span(self, operation: str) -> Span:
        span = Span(operation, self._client)
        self.spans.append(span)
        return span

    def finish(self) -> float:
        """Emit an info event with the total duration and span count.

        Returns:
            Elapsed time in milliseconds.
        """
        duration = _elapsed_ms(self.started_at)
        self._client.info(
            f"Transaction {self.name} completed",
            {"transaction": self.name, "duration": duration, "spans": len(self.spans)},
        )
        return duration

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.finish()
