"""Unit tests for the billing poll cycle."""

import json
from collections.abc import Callable
from datetime import date
from typing import Any

import pytest
from structlog.testing import capture_logs

from atlas_billing.billing.api import AtlasBillingApi, InvoiceMode
from atlas_billing.billing.constants import RATE_METRIC_NAME, TOTAL_METRIC_NAME
from atlas_billing.fetch.errors import AggregationError, DecodeError, ForbiddenError
from atlas_billing.poller import BillingPoller


ORG_ID = "5f0c0ffee0ddba11"
PENDING_PATH = f"orgs/{ORG_ID}/invoices/pending"
LIST_PATH = f"orgs/{ORG_ID}/invoices?itemsPerPage=2"


class FakeFetcher:
    """Fetcher returning canned bodies per path."""

    def __init__(self, responses: dict[str, bytes | Exception]) -> None:
        self.responses = responses
        self.paths: list[str] = []

    def fetch(self, path: str) -> bytes:
        self.paths.append(path)
        response = self.responses[path]
        if isinstance(response, Exception):
            raise response
        return response


class RecordingPublisher:
    """Publisher that keeps every sample it receives."""

    def __init__(self) -> None:
        self.samples: list[tuple[str, float, dict[str, str]]] = []

    def gauge(self, name: str, value: float, labels: dict[str, str]) -> None:
        self.samples.append((name, value, labels))


def _invoice_body(invoice_id: str, line_items: list[dict[str, Any]]) -> bytes:
    return json.dumps(
        {
            "amountBilledCents": 0,
            "amountPaidCents": 0,
            "created": "2024-03-01T00:00:07Z",
            "creditsCents": 0,
            "endDate": "2024-04-01T00:00:00Z",
            "id": invoice_id,
            "lineItems": line_items,
        }
    ).encode()


def _poller(
    responses: dict[str, bytes | Exception],
) -> tuple[BillingPoller, FakeFetcher, RecordingPublisher]:
    fetcher = FakeFetcher(responses)
    publisher = RecordingPublisher()
    return BillingPoller(AtlasBillingApi(fetcher, ORG_ID), publisher), fetcher, publisher


class TestSuccessfulCycle:
    """Tests for cycles that publish gauges."""

    def test_publishes_total_and_rate_gauges(
        self,
        line_item_payload: Callable[..., dict[str, Any]],
    ) -> None:
        """Test a pending invoice with one clustered and one storage item."""
        body = _invoice_body(
            "pending1",
            [
                line_item_payload(),
                line_item_payload(
                    sku="ATLAS_AWS_STORAGE",
                    unit="GB days",
                    quantity=10.0,
                    totalPriceCents=240,
                    unitPriceDollars=0.24,
                    tags={"project": ["billing"]},
                ),
            ],
        )
        poller, _, publisher = _poller({PENDING_PATH: body})

        report = poller.run_poll_cycle(InvoiceMode.PENDING)

        assert report.invoice_id == "pending1"
        assert report.mode == InvoiceMode.PENDING
        assert report.current_date == "2024-03-06T00:00:00Z"
        assert report.total_gauges == 2
        assert report.rate_gauges == 2
        assert publisher.samples == [
            (
                TOTAL_METRIC_NAME,
                216.0,
                {
                    "cluster_name": "Cluster0",
                    "group_name": "production",
                    "sku": "ATLAS_AWS_INSTANCE_M10",
                    "project": "",
                },
            ),
            (
                TOTAL_METRIC_NAME,
                240.0,
                {
                    "cluster_name": "Cluster0",
                    "group_name": "production",
                    "sku": "ATLAS_AWS_STORAGE",
                    "project": "billing",
                },
            ),
            (
                RATE_METRIC_NAME,
                0.09,
                {
                    "cluster_name": "Cluster0",
                    "group_name": "production",
                    "sku": "ATLAS_AWS_INSTANCE_M10",
                    "project": "",
                },
            ),
            (
                RATE_METRIC_NAME,
                pytest.approx(0.01),
                {
                    "cluster_name": "Cluster0",
                    "group_name": "production",
                    "sku": "ATLAS_AWS_STORAGE",
                    "project": "billing",
                },
            ),
        ]

    def test_empty_invoice_publishes_nothing(self) -> None:
        """Test that an invoice without line items is a successful no-op."""
        poller, _, publisher = _poller({PENDING_PATH: _invoice_body("pending1", [])})

        with capture_logs() as logs:
            report = poller.run_poll_cycle(InvoiceMode.PENDING)

        assert report.samples == []
        assert report.current_date is None
        assert publisher.samples == []
        warnings = [entry for entry in logs if entry["log_level"] == "warning"]
        assert [entry["event"] for entry in warnings] == ["poll_cycle_empty_invoice"]
        assert warnings[0]["invoice_id"] == "pending1"

    def test_auto_resolves_to_last_closed_on_first_day(
        self,
        line_item_payload: Callable[..., dict[str, Any]],
    ) -> None:
        """Test that AUTO reads the closed invoice on the first of a month."""
        poller, fetcher, _ = _poller(
            {
                LIST_PATH: json.dumps({"results": [{"id": "a"}, {"id": "b"}]}).encode(),
                f"orgs/{ORG_ID}/invoices/b": _invoice_body("b", [line_item_payload()]),
            }
        )

        report = poller.run_poll_cycle(InvoiceMode.AUTO, today=date(2024, 4, 1))

        assert report.mode == InvoiceMode.LAST_CLOSED
        assert report.invoice_id == "b"
        assert fetcher.paths == [LIST_PATH, f"orgs/{ORG_ID}/invoices/b"]

    def test_auto_resolves_to_pending_mid_month(self) -> None:
        """Test that AUTO reads the pending invoice after the first."""
        poller, fetcher, _ = _poller({PENDING_PATH: _invoice_body("pending1", [])})

        report = poller.run_poll_cycle(InvoiceMode.AUTO, today=date(2024, 3, 17))

        assert report.mode == InvoiceMode.PENDING
        assert fetcher.paths == [PENDING_PATH]


class TestFailedCycle:
    """Tests for cycles that must not publish."""

    def test_fetch_error_propagates_without_publishing(self) -> None:
        """Test that a forbidden fetch leaves the publisher untouched."""
        poller, _, publisher = _poller(
            {PENDING_PATH: ForbiddenError("forbidden", status_code=403)}
        )

        with pytest.raises(ForbiddenError):
            poller.run_poll_cycle(InvoiceMode.PENDING)

        assert publisher.samples == []

    def test_decode_error_propagates_without_publishing(self) -> None:
        """Test that an undecodable invoice leaves the publisher untouched."""
        poller, _, publisher = _poller({PENDING_PATH: b"{}"})

        with pytest.raises(DecodeError):
            poller.run_poll_cycle(InvoiceMode.PENDING)

        assert publisher.samples == []

    def test_aggregation_error_publishes_nothing(
        self,
        line_item_payload: Callable[..., dict[str, Any]],
    ) -> None:
        """Test that no partial results are published."""
        body = _invoice_body(
            "pending1",
            [
                line_item_payload(),
                line_item_payload(sku="OTHER", endDate="2024-03-6"),
            ],
        )
        poller, _, publisher = _poller({PENDING_PATH: body})

        with pytest.raises(AggregationError):
            poller.run_poll_cycle(InvoiceMode.PENDING)

        assert publisher.samples == []
