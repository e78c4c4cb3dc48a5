"""Metrics publishing for billing gauges."""

from atlas_billing.publish.prometheus import PrometheusPublisher


__all__ = ["PrometheusPublisher"]
