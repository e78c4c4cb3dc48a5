"""Unit tests for structured logging configuration."""

import io
import json
from collections.abc import Iterator

import pytest
import structlog
from pydantic import SecretStr

from atlas_billing.observability.logging import (
    bind_cycle_context,
    clear_cycle_context,
    configure_logging,
    redact_secret_fields,
)


@pytest.fixture
def log_stream() -> Iterator[io.StringIO]:
    """Configure JSON logging into a buffer, without logger caching."""
    stream = io.StringIO()
    configure_logging(output=stream, json_format=True)
    structlog.configure(cache_logger_on_first_use=False)
    yield stream
    clear_cycle_context()
    structlog.reset_defaults()


def _events(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestRedactSecretFields:
    """Tests for the credential masking processor."""

    def test_masks_secret_keys(self) -> None:
        """Test that credential keys and sensitive headers are masked."""
        event = redact_secret_fields(
            None,
            "info",
            {
                "event": "x",
                "private_key": "privkey",
                "Authorization": 'Digest username="pubkey"',
                "public_key": "pubkey",
            },
        )

        assert event == {
            "event": "x",
            "private_key": "[REDACTED]",
            "Authorization": "[REDACTED]",
            "public_key": "pubkey",
        }

    def test_masks_secret_values_under_any_key(self) -> None:
        """Test that SecretStr values are masked whatever their key."""
        event = redact_secret_fields(
            None, "info", {"event": "x", "key": SecretStr("privkey")}
        )

        assert event["key"] == "[REDACTED]"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_renders_json_with_cycle_context(self, log_stream: io.StringIO) -> None:
        """Test that bound cycle ids appear on every event."""
        bind_cycle_context("c0ffee")
        structlog.get_logger().info("poll_cycle_started", private_key="privkey")

        events = _events(log_stream)
        assert len(events) == 1
        assert events[0]["event"] == "poll_cycle_started"
        assert events[0]["cycle_id"] == "c0ffee"
        assert events[0]["level"] == "info"
        assert events[0]["private_key"] == "[REDACTED]"
        assert "privkey" not in log_stream.getvalue()

    def test_clear_cycle_context(self, log_stream: io.StringIO) -> None:
        """Test that the cycle id is dropped after clearing."""
        bind_cycle_context("c0ffee")
        clear_cycle_context()
        structlog.get_logger().info("poll_cycle_complete")

        assert "cycle_id" not in _events(log_stream)[0]

    def test_filters_below_level(self) -> None:
        """Test that debug events are dropped at INFO level."""
        stream = io.StringIO()
        configure_logging(output=stream, json_format=True)
        structlog.configure(cache_logger_on_first_use=False)
        try:
            structlog.get_logger().debug("fetch_initial_request")
        finally:
            structlog.reset_defaults()

        assert stream.getvalue() == ""
