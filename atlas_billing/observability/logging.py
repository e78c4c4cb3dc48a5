"""Structured logging configuration."""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog
from pydantic import SecretStr

from atlas_billing.fetch.redact import REDACTED_VALUE, is_sensitive_header


# Event keys whose values are credentials, besides sensitive header names
SECRET_EVENT_KEYS = frozenset({"private_key", "password"})


def redact_secret_fields(
    _logger: Any,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Mask credential values before an event is rendered.

    Keys naming a sensitive header or a digest secret are replaced, and so
    is any SecretStr value regardless of its key.
    """
    for key, value in event_dict.items():
        if (
            key.lower() in SECRET_EVENT_KEYS
            or is_sensitive_header(key)
            or isinstance(value, SecretStr)
        ):
            event_dict[key] = REDACTED_VALUE
    return event_dict


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the exporter.

    Events carry the bound poll cycle id, the log level and an ISO
    timestamp. Credential fields are masked before rendering as JSON
    (default) or as console output.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: True).
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        redact_secret_fields,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    # Route httpx and prometheus_client stdlib logging to the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=max(level, logging.WARNING),
    )


def bind_cycle_context(cycle_id: str) -> None:
    """Bind poll cycle context to all subsequent log messages.

    Args:
        cycle_id: Unique poll cycle identifier.
    """
    structlog.contextvars.bind_contextvars(cycle_id=cycle_id)


def clear_cycle_context() -> None:
    """Clear poll cycle context from log messages."""
    structlog.contextvars.unbind_contextvars("cycle_id")
