"""Constants for billing aggregation and gauge naming."""

TOTAL_METRIC_NAME = "atlas_billing_item_cents_total"
RATE_METRIC_NAME = "atlas_billing_item_cents_rate"

LABEL_NAMES = ("cluster_name", "group_name", "sku", "project")

# Units whose unit price is already an hourly rate
HOURLY_UNITS = frozenset({"GB hours", "server hours"})

PROJECT_TAG = "project"

CENTS_PER_DOLLAR = 100.0
HOURS_PER_DAY = 24.0
