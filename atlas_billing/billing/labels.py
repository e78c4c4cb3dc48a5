"""Gauge values and label sets derived from aggregated entries."""

from collections.abc import Iterator
from typing import NamedTuple

import structlog

from atlas_billing.billing.aggregator import AggregationResult
from atlas_billing.billing.constants import (
    CENTS_PER_DOLLAR,
    HOURLY_UNITS,
    HOURS_PER_DAY,
    RATE_METRIC_NAME,
    TOTAL_METRIC_NAME,
)
from atlas_billing.billing.models import AggregatedEntry


logger = structlog.get_logger()


class GaugeSample(NamedTuple):
    """One value to publish: metric name, value and label set."""

    name: str
    value: float
    labels: dict[str, str]


def labels_for(entry: AggregatedEntry) -> dict[str, str]:
    """Build the label set of an entry.

    Missing cluster, group or project values become empty strings.
    """
    return {
        "cluster_name": entry.cluster_name or "",
        "group_name": entry.group_name or "",
        "sku": entry.sku,
        "project": entry.project,
    }


def total_gauge_value(entry: AggregatedEntry) -> float:
    """Cumulative cost of a Total-view entry, in cents."""
    return float(entry.total_price_cents)


def rate_gauge_value(
    rate_entry: AggregatedEntry,
    total_entry: AggregatedEntry,
) -> float | None:
    """Current hourly rate of a Rate-view entry.

    Hourly units already carry an hourly price in ``unit_price_dollars``.
    Other units are billed per day, so the Total-view cost per unit is
    converted from cents per day to dollars per hour.

    Args:
        rate_entry: Entry of the Rate view.
        total_entry: Entry of the Total view with the same key.

    Returns:
        The rate, or None when the Total-view quantity is zero and no rate
        can be derived.
    """
    if rate_entry.unit in HOURLY_UNITS:
        return rate_entry.unit_price_dollars
    if total_entry.quantity == 0:
        return None
    return (
        total_entry.total_price_cents
        / total_entry.quantity
        / CENTS_PER_DOLLAR
        / HOURS_PER_DAY
    )


def iter_gauges(result: AggregationResult) -> Iterator[GaugeSample]:
    """Yield every gauge sample of one aggregation snapshot.

    Total-view samples come first, then Rate-view samples. Rate entries
    whose rate cannot be derived are skipped with a warning.

    Args:
        result: Aggregated views of one invoice.

    Yields:
        GaugeSample for each publishable entry.
    """
    for entry in result.total.values():
        yield GaugeSample(
            TOTAL_METRIC_NAME, total_gauge_value(entry), labels_for(entry)
        )

    for key, entry in result.rate.items():
        value = rate_gauge_value(entry, result.total[key])
        if value is None:
            logger.warning(
                "rate_skipped_zero_quantity",
                component="aggregator",
                key=key,
                unit=entry.unit,
            )
            continue
        yield GaugeSample(RATE_METRIC_NAME, value, labels_for(entry))
