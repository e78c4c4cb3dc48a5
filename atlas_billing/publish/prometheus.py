"""Prometheus gauge publisher for billing samples."""

import time

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

from atlas_billing.billing.constants import (
    LABEL_NAMES,
    RATE_METRIC_NAME,
    TOTAL_METRIC_NAME,
)


logger = structlog.get_logger()

_METRIC_HELP = {
    TOTAL_METRIC_NAME: "Cumulative cost of a billed item on the invoice, in cents",
    RATE_METRIC_NAME: "Current hourly cost of a billed item",
}

POLL_CYCLES_METRIC_NAME = "atlas_billing_poll_cycles"
LAST_SUCCESS_METRIC_NAME = "atlas_billing_last_success_timestamp_seconds"


class PrometheusPublisher:
    """Publishes billing gauges into a Prometheus registry.

    Gauges are created lazily, one per metric name, all labelled with
    ``cluster_name``, ``group_name``, ``sku`` and ``project``. Values persist
    until overwritten, so a failed poll cycle leaves the previous values
    in place.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize the publisher.

        Args:
            registry: Registry to publish into; a private one by default.
        """
        self.registry = registry if registry is not None else CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}
        self._poll_cycles = Counter(
            POLL_CYCLES_METRIC_NAME,
            "Billing poll cycles by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self._last_success = Gauge(
            LAST_SUCCESS_METRIC_NAME,
            "Unix time of the last successful billing poll cycle",
            registry=self.registry,
        )

    def _gauge_for(self, name: str) -> Gauge:
        gauge = self._gauges.get(name)
        if gauge is None:
            gauge = Gauge(
                name,
                _METRIC_HELP.get(name, name),
                list(LABEL_NAMES),
                registry=self.registry,
            )
            self._gauges[name] = gauge
        return gauge

    def gauge(self, name: str, value: float, labels: dict[str, str]) -> None:
        """Set one gauge sample.

        Args:
            name: Metric name.
            value: Sample value.
            labels: Value for each of the billing label names.
        """
        self._gauge_for(name).labels(**labels).set(value)

    def record_cycle(self, success: bool) -> None:
        """Count a finished poll cycle.

        Args:
            success: Whether the cycle published fresh values.
        """
        outcome = "success" if success else "failure"
        self._poll_cycles.labels(outcome=outcome).inc()
        if success:
            self._last_success.set(time.time())

    def serve(self, port: int, addr: str = "0.0.0.0") -> None:  # noqa: S104
        """Expose the registry on an HTTP scrape endpoint.

        Args:
            port: TCP port to listen on.
            addr: Address to bind.
        """
        start_http_server(port, addr=addr, registry=self.registry)
        logger.info(
            "metrics_server_started",
            component="publish",
            port=port,
            addr=addr,
        )
