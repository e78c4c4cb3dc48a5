"""CLI commands for the Atlas billing exporter."""

import json
import logging
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import click
import structlog

from atlas_billing import __version__
from atlas_billing.billing.api import AtlasBillingApi, InvoiceMode
from atlas_billing.config.loader import ConfigValidationError, load_config
from atlas_billing.config.schema import ExporterConfig
from atlas_billing.fetch.client import DigestFetcher
from atlas_billing.fetch.errors import AtlasApiError
from atlas_billing.fetch.metrics import FetchMetrics
from atlas_billing.fetch.models import Credentials
from atlas_billing.observability.logging import configure_logging
from atlas_billing.poller import BillingPoller
from atlas_billing.publish.prometheus import PrometheusPublisher
from atlas_billing.settings.app import SettingsError, get_settings


logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class ExporterOptions:
    """Options shared by every command."""

    config_path: Path | None
    mode: str | None
    timeout: float | None
    public_key: str | None
    private_key: str | None
    org_id: str | None
    json_logs: bool
    verbose: bool


def _common_options(func: F) -> F:
    """Attach the options shared by every command."""
    options = [
        click.option(
            "--config",
            "config_path",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="Path to exporter YAML configuration file.",
        ),
        click.option(
            "--mode",
            type=click.Choice([mode.value for mode in InvoiceMode]),
            default=None,
            help="Invoice to read: pending, last-closed, or auto (default).",
        ),
        click.option(
            "--timeout",
            type=float,
            default=None,
            help="HTTP request timeout in seconds (default: 60).",
        ),
        click.option(
            "--public-key",
            default=None,
            help="Atlas public API key (default: $ATLAS_PUBLIC_KEY).",
        ),
        click.option(
            "--private-key",
            default=None,
            help="Atlas private API key (default: $ATLAS_PRIVATE_KEY).",
        ),
        click.option(
            "--org",
            "org_id",
            default=None,
            help="Atlas organization id (default: $ATLAS_ORG_ID).",
        ),
        click.option(
            "--json-logs/--console-logs",
            default=True,
            help="Use JSON format for logs (default: true).",
        ),
        click.option(
            "--verbose",
            "-v",
            is_flag=True,
            help="Enable verbose logging.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _options_from(kwargs: dict[str, Any]) -> ExporterOptions:
    return ExporterOptions(
        config_path=kwargs.pop("config_path"),
        mode=kwargs.pop("mode"),
        timeout=kwargs.pop("timeout"),
        public_key=kwargs.pop("public_key"),
        private_key=kwargs.pop("private_key"),
        org_id=kwargs.pop("org_id"),
        json_logs=kwargs.pop("json_logs"),
        verbose=kwargs.pop("verbose"),
    )


def _load_runtime(
    options: ExporterOptions,
    overrides: dict[str, Any] | None = None,
) -> tuple[ExporterConfig, Credentials, str]:
    """Load configuration and credentials, exiting on failure.

    Args:
        options: Shared command options.
        overrides: Command-specific configuration overrides.

    Returns:
        Tuple of (config, credentials, organization id).
    """
    log_level = logging.DEBUG if options.verbose else logging.INFO
    configure_logging(level=log_level, json_format=options.json_logs)

    try:
        config = load_config(
            options.config_path,
            overrides={
                "mode": options.mode,
                "timeout_seconds": options.timeout,
                **(overrides or {}),
            },
        )
    except ConfigValidationError as e:
        click.echo("Configuration validation failed:", err=True)
        for error in e.errors:
            click.echo(f"  - {error['loc']}: {error['msg']}", err=True)
        sys.exit(1)

    try:
        settings = get_settings(
            public_key=options.public_key,
            private_key=options.private_key,
            org_id=options.org_id,
        )
        credentials = settings.credentials()
        org_id = settings.require_org_id()
    except SettingsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    return config, credentials, org_id


def poll_forever(
    poller: BillingPoller,
    publisher: PrometheusPublisher,
    mode: InvoiceMode,
    interval_seconds: float,
    max_cycles: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Run poll cycles until interrupted.

    A failed cycle is counted and logged; the previous gauge values stay
    published until a later cycle succeeds.

    Args:
        poller: Poll cycle runner.
        publisher: Publisher receiving cycle outcomes.
        mode: Invoice selection mode.
        interval_seconds: Pause between the end of one cycle and the next.
        max_cycles: Stop after this many cycles (None runs forever).
        sleep: Sleep function.

    Returns:
        Number of failed cycles.
    """
    failures = 0
    cycles = 0
    while max_cycles is None or cycles < max_cycles:
        cycles += 1
        try:
            poller.run_poll_cycle(mode)
        except AtlasApiError:
            failures += 1
            publisher.record_cycle(success=False)
        else:
            publisher.record_cycle(success=True)

        if max_cycles is not None and cycles >= max_cycles:
            break
        sleep(interval_seconds)
    return failures


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Atlas billing Prometheus exporter CLI."""


@cli.command()
@_common_options
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port for the metrics endpoint (default: 9184).",
)
@click.option(
    "--interval",
    type=int,
    default=None,
    help="Seconds between poll cycles (default: 3600).",
)
def run(port: int | None, interval: int | None, **kwargs: Any) -> None:
    """Serve billing gauges and refresh them periodically."""
    options = _options_from(kwargs)
    config, credentials, org_id = _load_runtime(
        options,
        overrides={"listen_port": port, "poll_interval_seconds": interval},
    )
    log = logger.bind(component="cli", command="run", org_id=org_id)

    publisher = PrometheusPublisher()
    publisher.serve(config.listen_port, addr=config.listen_address)

    with DigestFetcher(config.fetch_config(), credentials) as fetcher:
        poller = BillingPoller(AtlasBillingApi(fetcher, org_id), publisher)
        try:
            poll_forever(
                poller,
                publisher,
                config.mode,
                config.poll_interval_seconds,
            )
        except KeyboardInterrupt:
            log.info(
                "exporter_stopped",
                fetch_metrics=FetchMetrics.get_instance().to_dict(),
            )


@cli.command()
@_common_options
def once(**kwargs: Any) -> None:
    """Run a single poll cycle and print the gauges as JSON lines."""
    options = _options_from(kwargs)
    config, credentials, org_id = _load_runtime(options)

    publisher = PrometheusPublisher()
    with DigestFetcher(config.fetch_config(), credentials) as fetcher:
        poller = BillingPoller(AtlasBillingApi(fetcher, org_id), publisher)
        try:
            report = poller.run_poll_cycle(config.mode)
        except AtlasApiError as e:
            click.echo(f"Poll cycle failed ({e.error_class.value}): {e}", err=True)
            sys.exit(1)

    for sample in report.samples:
        click.echo(
            json.dumps(
                {"name": sample.name, "value": sample.value, "labels": sample.labels},
                sort_keys=True,
            )
        )


@cli.command()
@_common_options
def validate(**kwargs: Any) -> None:
    """Validate configuration and credentials without network calls."""
    options = _options_from(kwargs)
    config, credentials, org_id = _load_runtime(options)

    click.echo("Configuration is valid!")
    click.echo(f"  Base URL: {config.base_url}")
    click.echo(f"  Mode: {config.mode.value}")
    click.echo(f"  Poll interval: {config.poll_interval_seconds}s")
    click.echo(f"  Listen: {config.listen_address}:{config.listen_port}")
    click.echo(f"  Organization: {org_id}")
    click.echo(f"  Public key: {credentials.public_key}")


if __name__ == "__main__":
    cli()
