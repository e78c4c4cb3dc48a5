"""Reduction of invoice line items into Total and Rate views."""

from dataclasses import dataclass, field

import structlog

from atlas_billing.billing.models import AggregatedEntry, Invoice, grouping_key
from atlas_billing.fetch.errors import AggregationError


logger = structlog.get_logger()


@dataclass
class AggregationResult:
    """Both grouped views of one invoice snapshot.

    Attributes:
        total: Per-key sums of cost and quantity over the whole invoice.
        rate: Per-key entries of the most recent billing day only, with
            unit prices summed across regions.
        current_date: The most recent line item end date, or None for an
            invoice without line items.
    """

    total: dict[str, AggregatedEntry] = field(default_factory=dict)
    rate: dict[str, AggregatedEntry] = field(default_factory=dict)
    current_date: str | None = None

    @property
    def is_empty(self) -> bool:
        """Check whether the invoice contributed no line items."""
        return not self.total


def aggregate(invoice: Invoice) -> AggregationResult:
    """Group an invoice's line items into the Total and Rate views.

    The Total view sums ``total_price_cents`` and ``quantity`` for every
    line item of a grouping key. The Rate view only takes line items whose
    ``end_date`` equals the latest end date of the invoice and sums their
    ``unit_price_dollars``, since the API prices a sku once per region.

    Args:
        invoice: Decoded invoice.

    Returns:
        AggregationResult with both views. An invoice without line items
        yields two empty views.

    Raises:
        AggregationError: If end dates differ in width, which would make
            their lexicographic order differ from chronological order.
    """
    log = logger.bind(component="aggregator", invoice_id=invoice.id)

    if not invoice.line_items:
        log.info("aggregate_empty_invoice")
        return AggregationResult()

    widths = {len(item.end_date) for item in invoice.line_items}
    if len(widths) > 1:
        msg = (
            f"Invoice {invoice.id} mixes end date formats of widths "
            f"{sorted(widths)}"
        )
        raise AggregationError(msg)

    current_date = max(item.end_date for item in invoice.line_items)
    result = AggregationResult(current_date=current_date)

    for item in invoice.line_items:
        key = grouping_key(item)
        log.debug("aggregate_line_item", key=key, end_date=item.end_date)

        total_entry = result.total.get(key)
        if total_entry is None:
            result.total[key] = AggregatedEntry.from_line_item(item)
        else:
            total_entry.total_price_cents += item.total_price_cents
            total_entry.quantity += item.quantity

        if item.end_date != current_date:
            continue

        rate_entry = result.rate.get(key)
        if rate_entry is None:
            result.rate[key] = AggregatedEntry.from_line_item(item)
        else:
            rate_entry.unit_price_dollars += item.unit_price_dollars
            log.debug(
                "aggregate_rate_summed",
                key=key,
                unit_price_dollars=rate_entry.unit_price_dollars,
            )

    log.info(
        "aggregate_complete",
        line_items=len(invoice.line_items),
        total_entries=len(result.total),
        rate_entries=len(result.rate),
        current_date=current_date,
    )
    return result
