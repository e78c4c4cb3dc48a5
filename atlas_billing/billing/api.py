"""Invoice selection against the Atlas billing API."""

import json
from datetime import date
from enum import Enum
from typing import Protocol

import structlog

from atlas_billing.billing.models import Invoice
from atlas_billing.fetch.errors import DecodeError, NotFoundError


logger = structlog.get_logger()

# Two entries are enough for the API's own ordering to put the most
# recently closed invoice last.
INVOICE_LIST_PAGE_SIZE = 2


class InvoiceMode(str, Enum):
    """Which invoice a poll cycle reads.

    - PENDING: The still-open invoice of the current month
    - LAST_CLOSED: The most recently closed invoice
    - AUTO: LAST_CLOSED on the first day of a month, PENDING otherwise
    """

    PENDING = "pending"
    LAST_CLOSED = "last-closed"
    AUTO = "auto"


def resolve_mode(mode: InvoiceMode, today: date) -> InvoiceMode:
    """Resolve AUTO into a concrete mode for a given day.

    On the first of the month the pending invoice has just been opened and
    is nearly empty, so the previous month's closed invoice is read instead.

    Args:
        mode: Requested mode.
        today: Current date (UTC).

    Returns:
        PENDING or LAST_CLOSED.
    """
    if mode != InvoiceMode.AUTO:
        return mode
    if today.day == 1:
        return InvoiceMode.LAST_CLOSED
    return InvoiceMode.PENDING


class Fetcher(Protocol):
    """Anything that returns the body of an authenticated GET."""

    def fetch(self, path: str) -> bytes: ...


class AtlasBillingApi:
    """Invoice endpoints of one Atlas organization."""

    def __init__(self, fetcher: Fetcher, org_id: str) -> None:
        """Initialize the API wrapper.

        Args:
            fetcher: Authenticated fetcher.
            org_id: Atlas organization id.
        """
        self._fetcher = fetcher
        self._org_id = org_id
        self._log = logger.bind(component="billing_api", org_id=org_id)

    def get_pending_invoice(self) -> Invoice:
        """Fetch the organization's pending invoice."""
        body = self._fetcher.fetch(f"orgs/{self._org_id}/invoices/pending")
        return Invoice.from_json(body)

    def get_last_invoice_id(self) -> str:
        """Resolve the id of the most recently closed invoice.

        Returns:
            Invoice id of the last entry of the invoice listing.

        Raises:
            NotFoundError: If the listing has no results or no id.
            DecodeError: If the listing is not JSON.
        """
        path = f"orgs/{self._org_id}/invoices?itemsPerPage={INVOICE_LIST_PAGE_SIZE}"
        body = self._fetcher.fetch(path)

        try:
            listing = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            msg = f"Invoice listing is not valid JSON: {e}"
            raise DecodeError(msg) from e

        results = listing.get("results") if isinstance(listing, dict) else None
        if not isinstance(results, list) or not results:
            msg = f"No invoices listed for organization {self._org_id}"
            raise NotFoundError(msg)

        last = results[-1]
        invoice_id = last.get("id") if isinstance(last, dict) else None
        if not isinstance(invoice_id, str) or not invoice_id:
            msg = "Last listed invoice has no id"
            raise NotFoundError(msg)

        self._log.debug("last_invoice_resolved", invoice_id=invoice_id)
        return invoice_id

    def get_last_invoice(self) -> Invoice:
        """Fetch the most recently closed invoice."""
        invoice_id = self.get_last_invoice_id()
        body = self._fetcher.fetch(f"orgs/{self._org_id}/invoices/{invoice_id}")
        return Invoice.from_json(body)

    def get_invoice(self, mode: InvoiceMode) -> Invoice:
        """Fetch the invoice selected by a concrete mode.

        Args:
            mode: PENDING or LAST_CLOSED.

        Returns:
            Decoded invoice.

        Raises:
            ValueError: If mode is AUTO; resolve it first.
        """
        if mode == InvoiceMode.PENDING:
            return self.get_pending_invoice()
        if mode == InvoiceMode.LAST_CLOSED:
            return self.get_last_invoice()
        msg = f"Invoice mode {mode.value!r} must be resolved before fetching"
        raise ValueError(msg)
