# tests/unit/client/test_config.py
"""Tests for Settings defaults, aliases and invalid-option recovery."""

import re
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from crumbline.config import Settings
from crumbline.events import Release


class TestSettingsDefaults:
    def test_documented_defaults(self) -> None:
        settings = Settings.from_options()
        assert settings.dsn is None
        assert settings.environment == "development"
        assert settings.sample_rate == 1.0
        assert settings.traces_sample_rate == 1.0
        assert settings.max_breadcrumbs == 100
        assert settings.max_message_length == 8192
        assert settings.attach_stacktrace is True
        assert settings.transport == "async"
        assert settings.session_timeout_ms == 1_800_000
        assert settings.auto_session_tracking is True
        assert settings.send_default_pii is False
        assert settings.integrations == []
        assert settings.server_name

    def test_non_production_enables_debug_and_console(self) -> None:
        settings = Settings.from_options(environment="staging")
        assert settings.debug is True
        assert settings.enable_console_logging is True

    def test_production_disables_debug_and_console(self) -> None:
        settings = Settings.from_options(environment="production")
        assert settings.is_production
        assert settings.debug is False
        assert settings.enable_console_logging is False

    def test_explicit_values_override_environment_defaults(self) -> None:
        settings = Settings.from_options(environment="production", debug=True, enableConsoleLogging=True)
        assert settings.debug is True
        assert settings.enable_console_logging is True

    def test_settings_are_frozen(self) -> None:
        settings = Settings.from_options()
        with pytest.raises(ValidationError):
            settings.sample_rate = 0.5  # type: ignore[misc]


class TestSettingsAliases:
    def test_camel_case_options_accepted(self) -> None:
        settings = Settings.from_options({"sampleRate": 0.25, "maxBreadcrumbs": 10, "sendDefaultPii": True})
        assert settings.sample_rate == 0.25
        assert settings.max_breadcrumbs == 10
        assert settings.send_default_pii is True

    def test_kwargs_merge_over_mapping(self) -> None:
        settings = Settings.from_options({"environment": "a"}, environment="b")
        assert settings.environment == "b"

    def test_release_from_mapping(self) -> None:
        settings = Settings.from_options(release={"version": "1.4.0", "commit": "abc123"})
        assert settings.release == Release(version="1.4.0", commit="abc123")

    def test_ignore_errors_keeps_strings_and_patterns(self) -> None:
        pattern = re.compile(r"HTTP 5\d\d")
        settings = Settings.from_options(ignore_errors=["timeout", pattern])
        assert settings.ignore_errors[0] == "timeout"
        assert settings.ignore_errors[1].pattern == pattern.pattern

    def test_unknown_options_ignored(self) -> None:
        settings = Settings.from_options(no_such_option=True)
        assert not hasattr(settings, "no_such_option")


class TestInvalidOptions:
    @pytest.mark.parametrize(
        ("option", "value", "field", "default"),
        [
            ("sample_rate", 5, "sample_rate", 1.0),
            ("sampleRate", -1, "sample_rate", 1.0),
            ("max_breadcrumbs", 0, "max_breadcrumbs", 100),
            ("before_send", "not callable", "before_send", None),
            ("session_timeout_ms", "soon", "session_timeout_ms", 1_800_000),
        ],
    )
    def test_invalid_value_replaced_by_default(self, option: str, value: object, field: str, default: object) -> None:
        settings = Settings.from_options({option: value})
        assert getattr(settings, field) == default

    def test_valid_options_survive_alongside_invalid(self) -> None:
        settings = Settings.from_options(sample_rate=9, environment="qa", max_message_length=100)
        assert settings.sample_rate == 1.0
        assert settings.environment == "qa"
        assert settings.max_message_length == 100

    def test_rejected_options_logged(self) -> None:
        with patch("crumbline.config.logger") as mock_logger:
            Settings.from_options(sample_rate=9, max_breadcrumbs=-5)

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["options"] == ["max_breadcrumbs", "sample_rate"]

    def test_valid_options_not_logged(self) -> None:
        with patch("crumbline.config.logger") as mock_logger:
            Settings.from_options(sample_rate=0.5)
        mock_logger.warning.assert_not_called()
