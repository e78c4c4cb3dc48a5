"""Billing aggregation for Atlas invoices.

Reduces invoice line items into two views:
- Total: cumulative cost and quantity per billed entity
- Rate: current hourly cost per billed entity, from the latest billing day
"""

from atlas_billing.billing.aggregator import AggregationResult, aggregate
from atlas_billing.billing.api import AtlasBillingApi, InvoiceMode, resolve_mode
from atlas_billing.billing.constants import (
    HOURLY_UNITS,
    LABEL_NAMES,
    RATE_METRIC_NAME,
    TOTAL_METRIC_NAME,
)
from atlas_billing.billing.labels import (
    GaugeSample,
    iter_gauges,
    labels_for,
    rate_gauge_value,
    total_gauge_value,
)
from atlas_billing.billing.models import (
    AggregatedEntry,
    Invoice,
    LineItem,
    grouping_key,
)


__all__ = [
    # Models
    "Invoice",
    "LineItem",
    "AggregatedEntry",
    "grouping_key",
    # Aggregation
    "AggregationResult",
    "aggregate",
    # Gauges
    "GaugeSample",
    "iter_gauges",
    "labels_for",
    "rate_gauge_value",
    "total_gauge_value",
    # Invoice selection
    "AtlasBillingApi",
    "InvoiceMode",
    "resolve_mode",
    # Constants
    "HOURLY_UNITS",
    "LABEL_NAMES",
    "RATE_METRIC_NAME",
    "TOTAL_METRIC_NAME",
]
