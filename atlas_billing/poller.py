"""One billing poll cycle: fetch, aggregate, publish."""

import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol

import structlog

from atlas_billing.billing.aggregator import aggregate
from atlas_billing.billing.api import AtlasBillingApi, InvoiceMode, resolve_mode
from atlas_billing.billing.constants import RATE_METRIC_NAME, TOTAL_METRIC_NAME
from atlas_billing.billing.labels import GaugeSample, iter_gauges
from atlas_billing.fetch.errors import AtlasApiError
from atlas_billing.observability.logging import (
    bind_cycle_context,
    clear_cycle_context,
)


logger = structlog.get_logger()


class GaugePublisher(Protocol):
    """Sink for (metric name, value, label set) samples."""

    def gauge(self, name: str, value: float, labels: dict[str, str]) -> None: ...


@dataclass
class CycleReport:
    """Outcome of a successful poll cycle.

    Attributes:
        cycle_id: Identifier bound to the cycle's log lines.
        mode: Concrete invoice mode used.
        invoice_id: Id of the aggregated invoice.
        current_date: Latest line item end date, None for an empty invoice.
        samples: Every gauge sample that was published.
        duration_ms: Wall time of the cycle.
    """

    cycle_id: str
    mode: InvoiceMode
    invoice_id: str
    current_date: str | None
    samples: list[GaugeSample] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def total_gauges(self) -> int:
        """Number of Total-view samples published."""
        return sum(1 for sample in self.samples if sample.name == TOTAL_METRIC_NAME)

    @property
    def rate_gauges(self) -> int:
        """Number of Rate-view samples published."""
        return sum(1 for sample in self.samples if sample.name == RATE_METRIC_NAME)


class BillingPoller:
    """Runs poll cycles against one organization.

    Holds no state between cycles besides its collaborators, which are
    read-only. Gauges are only published once aggregation has completed,
    so a failing or abandoned cycle leaves previous values untouched.
    """

    def __init__(self, api: AtlasBillingApi, publisher: GaugePublisher) -> None:
        """Initialize the poller.

        Args:
            api: Invoice endpoints of the organization.
            publisher: Gauge sink.
        """
        self._api = api
        self._publisher = publisher

    def run_poll_cycle(
        self,
        mode: InvoiceMode = InvoiceMode.AUTO,
        today: date | None = None,
    ) -> CycleReport:
        """Fetch one invoice, aggregate it and publish its gauges.

        Args:
            mode: Invoice selection mode; AUTO is resolved against today.
            today: Date used to resolve AUTO (defaults to today in UTC).

        Returns:
            CycleReport describing what was published.

        Raises:
            AtlasApiError: Any fetch, decode or aggregation failure. No
                gauge is published in that case.
        """
        start_time_ns = time.perf_counter_ns()
        cycle_id = uuid.uuid4().hex[:12]
        bind_cycle_context(cycle_id)
        concrete_mode = resolve_mode(mode, today or datetime.now(UTC).date())
        log = logger.bind(component="poller", mode=concrete_mode.value)

        try:
            log.info("poll_cycle_started", requested_mode=mode.value)
            try:
                invoice = self._api.get_invoice(concrete_mode)
                result = aggregate(invoice)
            except AtlasApiError as exc:
                log.error(
                    "poll_cycle_failed",
                    error_class=exc.error_class.value,
                    status_code=exc.status_code,
                    error=str(exc),
                )
                raise

            if result.is_empty:
                log.warning("poll_cycle_empty_invoice", invoice_id=invoice.id)

            # Materialize every sample before publishing any of them
            samples = list(iter_gauges(result))
            for sample in samples:
                self._publisher.gauge(sample.name, sample.value, sample.labels)

            report = CycleReport(
                cycle_id=cycle_id,
                mode=concrete_mode,
                invoice_id=invoice.id,
                current_date=result.current_date,
                samples=samples,
                duration_ms=(time.perf_counter_ns() - start_time_ns) / 1_000_000,
            )
            log.info(
                "poll_cycle_complete",
                invoice_id=invoice.id,
                current_date=result.current_date,
                total_gauges=report.total_gauges,
                rate_gauges=report.rate_gauges,
                duration_ms=round(report.duration_ms, 2),
            )
            return report
        finally:
            clear_cycle_context()
