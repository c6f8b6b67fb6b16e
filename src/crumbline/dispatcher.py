# src/crumbline/dispatcher.py
"""TransportDispatcher ships finalized events to the collector.

The TransportDispatcher is the only part of crumbline that touches the
network:
1. Applies the SamplingFilter (transport is the only thing sampling gates)
2. Encodes the wire payload once, identically for every transport
3. Delivers inline (blocking transports) or queues for the worker thread
4. Catches every delivery failure; logs it only in debug mode
5. Tracks outstanding sends so flush() can really drain

Design principles:
- Never blocks the log call on the network (except the "sync" transport,
  which is blocking by definition)
- Never retries, never raises into application code
- Full queue drops the new event (non-blocking backpressure)
- Aggregate logging every 100 drops

Thread Safety:
    send() runs on the caller's thread; _worker_loop() on the worker thread.
    - _pending is guarded by _pending_cond (flush() waits on it)
    - sent/failed/dropped counters are guarded by _metrics_lock
"""

from __future__ import annotations

import atexit
import json
import queue
import threading
from typing import Any

from crumbline.errors import DropReason
from crumbline.events import LogEvent
from crumbline.logging import get_logger, transport_activity
from crumbline.protocols import TransportProtocol
from crumbline.sampling import SamplingFilter

logger = get_logger(__name__)


def build_payload(event: LogEvent, server_name: str) -> dict[str, Any]:
    """Wire payload: every event field plus ``server_name`` and ``modules``."""
    payload = event.to_payload()
    payload["server_name"] = server_name
    payload["modules"] = {}
    return payload


def encode_payload(payload: dict[str, Any]) -> bytes:
    """JSON-encode a payload; values JSON cannot represent are stringified."""
    return json.dumps(payload, default=str).encode("utf-8")


class TransportDispatcher:
    """Sends finalized events using the configured transport.

    With no DSN or no transport, send() is a no-op.

    Example:
        >>> dispatcher = TransportDispatcher(
        ...     dsn="https://collector.example.com/api/logs",
        ...     transport=transport,
        ...     sampler=SamplingFilter(1.0),
        ...     server_name="web-1",
        ... )
        >>> dispatcher.send(event)
        True
        >>> dispatcher.flush(timeout=2.0)
        True
        >>> dispatcher.close()
    """

    _LOG_INTERVAL = 100

    def __init__(
        self,
        *,
        dsn: str | None,
        transport: TransportProtocol | None,
        sampler: SamplingFilter,
        server_name: str,
        debug: bool = False,
        queue_size: int = 1000,
        shutdown_timeout: float = 5.0,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            dsn: Collector URL; None disables sending
            transport: Configured transport; None disables sending
            sampler: Gate consulted once per event
            server_name: Host name added to every payload
            debug: Log delivery failures when True
            queue_size: Maximum queued sends before new events are dropped
            shutdown_timeout: Default seconds close() waits for pending sends
        """
        self._dsn = dsn
        self._transport = transport
        self._sampler = sampler
        self._server_name = server_name
        self._debug = debug
        self._shutdown_timeout = shutdown_timeout

        # Health metrics
        self._events_sent = 0
        self._events_failed = 0
        self._events_dropped = 0
        self._last_logged_drop_count = 0
        self._metrics_lock = threading.Lock()

        self._pending = 0
        self._pending_cond = threading.Condition()
        self._closed = False

        self._queue: queue.Queue[bytes | None] = queue.Queue(maxsize=queue_size)
        self._worker: threading.Thread | None = None
        if dsn and transport is not None:
            if not transport.blocking:
                self._start_worker()
            atexit.register(self.close)

    @property
    def enabled(self) -> bool:
        return bool(self._dsn) and self._transport is not None

    @property
    def transport(self) -> TransportProtocol | None:
        return self._transport

    def _start_worker(self) -> None:
        ready = threading.Event()
        # Daemon: close(), registered with atexit, drains the queue before
        # the interpreter tears the thread down.
        self._worker = threading.Thread(
            target=self._worker_loop,
            args=(ready,),
            name="crumbline-transport",
            daemon=True,
        )
        self._worker.start()
        ready.wait(timeout=5.0)

    def _worker_loop(self, ready: threading.Event) -> None:
        """Worker thread: deliver queued payloads until the sentinel arrives."""
        ready.set()
        while True:
            body = self._queue.get()
            try:
                if body is None:  # Shutdown sentinel
                    break
                self._deliver(body)
            finally:
                self._queue.task_done()
                if body is not None:
                    self._task_finished()

    def _task_finished(self) -> None:
        with self._pending_cond:
            self._pending -= 1
            self._pending_cond.notify_all()

    def _deliver(self, body: bytes) -> None:
        """Send one payload, absorbing any failure."""
        assert self._transport is not None and self._dsn is not None
        try:
            with transport_activity():
                self._transport.send(self._dsn, body)
        except Exception as e:
            with self._metrics_lock:
                self._events_failed += 1
            if self._debug:
                logger.error(
                    "Failed to send event to DSN",
                    transport=self._transport.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            return
        with self._metrics_lock:
            self._events_sent += 1

    def send(self, event: LogEvent) -> bool:
        """Sample, encode and dispatch an event.

        Returns:
            True if delivery was initiated (or completed, for blocking
            transports); False if the event was not sent.
        """
        if not self.enabled or self._closed:
            return False

        if not self._sampler.should_sample():
            logger.debug("Event not sent", reason=DropReason.SAMPLED_OUT)
            return False

        try:
            body = encode_payload(build_payload(event, self._server_name))
        except Exception as e:
            # e.g. circular references inside context or extras
            with self._metrics_lock:
                self._events_failed += 1
            if self._debug:
                logger.error("Failed to encode event payload", error=str(e), error_type=type(e).__name__)
            return False

        assert self._transport is not None
        if self._transport.blocking:
            self._deliver(body)
            return True

        with self._pending_cond:
            self._pending += 1
        try:
            self._queue.put_nowait(body)
        except queue.Full:
            self._task_finished()
            with self._metrics_lock:
                self._events_dropped += 1
                self._log_drops_if_needed()
            return False
        return True

    def _log_drops_if_needed(self) -> None:
        """Log aggregate drop message if threshold reached.

        Must be called while holding _metrics_lock.
        """
        if self._events_dropped - self._last_logged_drop_count >= self._LOG_INTERVAL:
            logger.warning(
                "Events dropped, transport queue full",
                reason=DropReason.QUEUE_FULL,
                dropped_since_last_log=self._events_dropped - self._last_logged_drop_count,
                dropped_total=self._events_dropped,
                queue_maxsize=self._queue.maxsize,
            )
            self._last_logged_drop_count = self._events_dropped

    @property
    def pending(self) -> int:
        """Number of queued or in-flight sends."""
        with self._pending_cond:
            return self._pending

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of dispatcher health.

        Returns:
            events_sent, events_failed, events_dropped, pending, queue_depth
            and queue_maxsize. Reads are approximately consistent.
        """
        with self._metrics_lock:
            metrics: dict[str, Any] = {
                "events_sent": self._events_sent,
                "events_failed": self._events_failed,
                "events_dropped": self._events_dropped,
            }
        metrics["pending"] = self.pending
        metrics["queue_depth"] = self._queue.qsize()
        metrics["queue_maxsize"] = self._queue.maxsize
        return metrics

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every queued send has finished.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely.

        Returns:
            True if all pending sends completed, False on timeout.
        """
        with self._pending_cond:
            return self._pending_cond.wait_for(lambda: self._pending == 0, timeout=timeout)

    def close(self, timeout: float | None = None) -> bool:
        """Drain pending sends, stop the worker and close the transport.

        Shutdown Sequence:
        1. Reject new events
        2. Wait up to ``timeout`` for pending sends
        3. Send the sentinel (discarding leftovers if the queue is still full)
        4. Join the worker and close the transport

        Idempotent; later calls return True immediately.

        Returns:
            True if every pending send completed before shutdown.
        """
        if self._closed:
            return True
        self._closed = True
        atexit.unregister(self.close)

        if timeout is None:
            timeout = self._shutdown_timeout
        drained = self.flush(timeout)

        if self._worker is not None:
            sentinel_sent = False
            for _ in range(self._queue.maxsize + 10):
                try:
                    self._queue.put(None, timeout=0.1)
                    sentinel_sent = True
                    break
                except queue.Full:
                    try:
                        discarded = self._queue.get_nowait()
                        self._queue.task_done()
                        if discarded is not None:
                            self._task_finished()
                            with self._metrics_lock:
                                self._events_dropped += 1
                    except queue.Empty:
                        pass
            if not sentinel_sent:
                logger.error("Failed to send shutdown sentinel - transport worker may hang")
            self._worker.join(timeout=max(timeout, 0.1))
            if self._worker.is_alive():
                logger.warning("Transport worker did not exit within timeout")

        if self._transport is not None:
            try:
                self._transport.close()
            except Exception as e:
                logger.warning("Transport close failed", transport=self._transport.name, error=str(e))

        logger.debug("Transport dispatcher closed", **self.health_metrics)
        return drained
