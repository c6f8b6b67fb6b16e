# tests/unit/integrations/test_integrations.py
"""Tests for the integration contract and the built-in integrations."""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Callable
from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx

from crumbline.breadcrumbs import BreadcrumbType
from crumbline.client import Client
from crumbline.events import LogLevel
from crumbline.integrations import BreadcrumbHandler, CaptureHandle, ExceptHookIntegration, LoggingIntegration
from tests.fixtures import COLLECTOR_URL, RecordingTransport


class RecordingIntegration:
    def __init__(self, name: str, calls: list[str] | None = None) -> None:
        self.name = name
        self.calls = calls if calls is not None else []
        self.handle: CaptureHandle | None = None

    def setup_once(self, handle: CaptureHandle) -> None:
        self.calls.append(self.name)
        self.handle = handle


class ExplodingIntegration:
    name = "exploding"

    def setup_once(self, handle: CaptureHandle) -> None:
        raise RuntimeError("cannot attach")


def _transport(client: Client) -> RecordingTransport:
    transport = client.dispatcher.transport
    assert isinstance(transport, RecordingTransport)
    return transport


class TestIntegrationContract:
    def test_setup_runs_once_in_configured_order(self, make_client: Callable[..., Client]) -> None:
        calls: list[str] = []
        first, second = RecordingIntegration("first", calls), RecordingIntegration("second", calls)
        client = make_client(integrations=[first, second])

        assert calls == ["first", "second"]
        assert client.integrations == [first, second]

    def test_failing_setup_isolated(self, make_client: Callable[..., Client]) -> None:
        survivor = RecordingIntegration("survivor")
        with patch("crumbline.integrations.base.logger") as mock_logger:
            client = make_client(integrations=[ExplodingIntegration(), survivor])

        assert client.integrations == [survivor]
        assert survivor.handle is not None
        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args.kwargs["integration"] == "exploding"

    def test_handle_exposes_only_capture_entry_points(self, make_client: Callable[..., Client]) -> None:
        integration = RecordingIntegration("recorder")
        make_client(integrations=[integration])
        handle = integration.handle

        assert handle is not None
        for allowed in ("add_breadcrumb", "capture_exception", "capture_message"):
            assert callable(getattr(handle, allowed))
        for internal in ("set_tag", "scope", "dispatcher", "close"):
            assert not hasattr(handle, internal)

    def test_handle_feeds_client(self, make_client: Callable[..., Client]) -> None:
        integration = RecordingIntegration("recorder")
        client = make_client(integrations=[integration])
        handle = integration.handle
        assert handle is not None

        handle.add_breadcrumb("clicked buy", category="ui.click", type=BreadcrumbType.CLICK)
        handle.capture_message("from adapter", LogLevel.WARN)
        handle.capture_exception(ValueError("adapter saw this"))

        payloads = _transport(client).payloads
        assert [p["message"] for p in payloads] == ["from adapter", "adapter saw this"]
        assert payloads[0]["level"] == "warn"
        assert payloads[0]["breadcrumbs"][0]["category"] == "ui.click"

    def test_handle_inert_after_client_closed(self, make_client: Callable[..., Client]) -> None:
        integration = RecordingIntegration("recorder")
        client = make_client(integrations=[integration])
        transport = _transport(client)
        client.close()

        assert integration.handle is not None
        assert integration.handle.closed
        integration.handle.capture_message("too late")
        integration.handle.add_breadcrumb("too late")
        assert transport.sent == []
        assert len(client.scope.breadcrumbs) == 0


class TestLoggingIntegration:
    @pytest.fixture
    def app_logger(self) -> logging.Logger:
        app_logger = logging.getLogger("tests.app")
        app_logger.setLevel(logging.DEBUG)
        app_logger.propagate = False
        return app_logger

    def test_records_become_breadcrumbs(self, make_client: Callable[..., Client], app_logger: logging.Logger) -> None:
        client = make_client(integrations=[LoggingIntegration(logger="tests.app")])

        app_logger.debug("below threshold")
        app_logger.info("cart loaded with %d items", 3)
        app_logger.warning("slow response")

        crumbs = client.scope.breadcrumbs.snapshot()
        assert [c.message for c in crumbs] == ["cart loaded with 3 items", "slow response"]
        assert crumbs[0].category == "logging"
        assert crumbs[0].type is BreadcrumbType.INFO
        assert crumbs[1].level is LogLevel.WARN
        assert crumbs[0].data == {"logger": "tests.app"}

    def test_error_with_exc_info_captured(self, make_client: Callable[..., Client], app_logger: logging.Logger) -> None:
        client = make_client(integrations=[LoggingIntegration(logger="tests.app")])
        app_logger.info("starting payment")
        try:
            raise ConnectionError("gateway down")
        except ConnectionError:
            app_logger.exception("payment failed")

        payloads = _transport(client).payloads
        assert len(payloads) == 1
        event = payloads[0]
        assert event["message"] == "gateway down"
        assert event["error"] == {"type": "ConnectionError", "value": "gateway down"}
        assert event["context"]["log_message"] == "payment failed"
        assert [b["message"] for b in event["breadcrumbs"]] == ["starting payment"]
        assert client.scope.breadcrumbs.snapshot()[-1].type is BreadcrumbType.ERROR

    def test_error_without_exc_info_only_breadcrumb(self, make_client: Callable[..., Client], app_logger: logging.Logger) -> None:
        client = make_client(integrations=[LoggingIntegration(logger="tests.app")])
        app_logger.error("plain error line")
        assert _transport(client).sent == []
        assert client.scope.breadcrumbs.snapshot()[-1].message == "plain error line"

    def test_own_records_ignored(self) -> None:
        handle = MagicMock(spec=CaptureHandle)
        handler = BreadcrumbHandler(handle)
        record = logging.LogRecord("crumbline.dispatcher", logging.ERROR, __file__, 1, "internal", None, None)
        handler.emit(record)
        handle.add_breadcrumb.assert_not_called()

    def test_records_logged_during_delivery_ignored(self, make_client: Callable[..., Client]) -> None:
        client = make_client(transport="recording-http-logging", integrations=[LoggingIntegration()])
        client.info("one")
        client.info("two")

        second = _transport(client).payloads[1]
        assert second["breadcrumbs"] == []
        assert len(client.scope.breadcrumbs) == 0

    def test_http_records_outside_delivery_still_recorded(self, make_client: Callable[..., Client]) -> None:
        client = make_client(integrations=[LoggingIntegration()])
        logging.getLogger("httpx").warning("HTTP Request: GET https://api.shop.test/items")
        assert [c.data for c in client.scope.breadcrumbs] == [{"logger": "httpx"}]

    @respx.mock
    def test_dsn_requests_not_recorded_with_sync_transport(self, make_client: Callable[..., Client]) -> None:
        route = respx.post(COLLECTOR_URL).mock(return_value=httpx.Response(200))
        httpx_logger = logging.getLogger("httpx")
        previous_level = httpx_logger.level
        httpx_logger.setLevel(logging.INFO)
        try:
            client = make_client(transport="sync", integrations=[LoggingIntegration()])
            client.info("one")
            client.info("two")
        finally:
            httpx_logger.setLevel(previous_level)

        assert route.call_count == 2
        second = json.loads(route.calls[1].request.content)
        assert second["breadcrumbs"] == []

    def test_close_removes_handler(self, make_client: Callable[..., Client], app_logger: logging.Logger) -> None:
        integration = LoggingIntegration(logger="tests.app")
        client = make_client(integrations=[integration])
        handler = integration.handler
        assert handler in app_logger.handlers

        client.close()
        assert handler not in app_logger.handlers
        assert integration.handler is None


class TestExceptHookIntegration:
    def test_uncaught_exception_captured_then_chained(
        self,
        make_client: Callable[..., Client],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        previous = MagicMock()
        monkeypatch.setattr(sys, "excepthook", previous)
        client = make_client(integrations=[ExceptHookIntegration(threads=False)])

        error = RuntimeError("unhandled")
        sys.excepthook(RuntimeError, error, None)

        payload = _transport(client).payloads[0]
        assert payload["level"] == "fatal"
        assert payload["message"] == "unhandled"
        assert payload["context"] == {"mechanism": "excepthook"}
        previous.assert_called_once_with(RuntimeError, error, None)

    def test_keyboard_interrupt_passed_through(self, make_client: Callable[..., Client], monkeypatch: pytest.MonkeyPatch) -> None:
        previous = MagicMock()
        monkeypatch.setattr(sys, "excepthook", previous)
        client = make_client(integrations=[ExceptHookIntegration(threads=False)])

        sys.excepthook(KeyboardInterrupt, KeyboardInterrupt(), None)
        assert _transport(client).sent == []
        previous.assert_called_once()

    def test_thread_exception_captured(self, make_client: Callable[..., Client], monkeypatch: pytest.MonkeyPatch) -> None:
        previous = MagicMock()
        monkeypatch.setattr(threading, "excepthook", previous)
        client = make_client(integrations=[ExceptHookIntegration()])

        def work() -> None:
            raise ValueError("worker crashed")

        thread = threading.Thread(target=work, name="worker-7")
        thread.start()
        thread.join()

        payload = _transport(client).payloads[0]
        assert payload["error"]["type"] == "ValueError"
        assert payload["context"]["thread"] == "worker-7"
        previous.assert_called_once()

    def test_close_restores_previous_hooks(self, make_client: Callable[..., Client], monkeypatch: pytest.MonkeyPatch) -> None:
        previous_sys, previous_threading = MagicMock(), MagicMock()
        monkeypatch.setattr(sys, "excepthook", previous_sys)
        monkeypatch.setattr(threading, "excepthook", previous_threading)

        client = make_client(integrations=[ExceptHookIntegration()])
        assert sys.excepthook is not previous_sys
        client.close()

        assert sys.excepthook is previous_sys
        assert threading.excepthook is previous_threading
