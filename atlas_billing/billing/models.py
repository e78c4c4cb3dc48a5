"""Data models for Atlas invoices and aggregated billing entries."""

from dataclasses import dataclass, field
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from atlas_billing.billing.constants import PROJECT_TAG
from atlas_billing.fetch.errors import DecodeError


# Tag key -> tag values, as attached to a line item by the billing API
Tags = dict[str, list[str]]

_WIRE_CONFIG = ConfigDict(
    frozen=True,
    extra="ignore",
    alias_generator=to_camel,
    populate_by_name=True,
)


class LineItem(BaseModel):
    """One priced charge row of an invoice.

    Attributes:
        cluster_name: Cluster the charge belongs to, if any.
        group_name: Project (group) name, if any.
        created: Creation timestamp (ISO-8601).
        start_date: Start of the billed period (ISO-8601).
        end_date: End of the billed period (ISO-8601, fixed width).
        quantity: Billed quantity in ``unit``.
        sku: Identifier of the billed product.
        unit: Billing unit, e.g. "GB hours" or "server hours".
        unit_price_dollars: Price per unit in dollars.
        total_price_cents: Total price in cents.
        tags: Resource tags; absent and null are treated the same.
    """

    model_config = _WIRE_CONFIG

    cluster_name: str | None = None
    group_name: str | None = None
    created: str
    start_date: str
    end_date: str
    quantity: float
    sku: Annotated[str, Field(min_length=1)]
    unit: str
    unit_price_dollars: float
    total_price_cents: Annotated[int, Field(ge=0)]
    tags: Tags | None = None


class Invoice(BaseModel):
    """One billing period's invoice summary."""

    model_config = _WIRE_CONFIG

    amount_billed_cents: Annotated[int, Field(ge=0)]
    amount_paid_cents: Annotated[int, Field(ge=0)]
    created: str
    credits_cents: Annotated[int, Field(ge=0)]
    end_date: str
    id: Annotated[str, Field(min_length=1)]
    line_items: list[LineItem] = Field(default_factory=list)
    start_date: str | None = None
    status_name: str | None = None

    @classmethod
    def from_json(cls, data: bytes | str) -> "Invoice":
        """Decode an invoice from its wire JSON.

        Args:
            data: Response body.

        Returns:
            Decoded Invoice.

        Raises:
            DecodeError: If the body is not JSON or has the wrong shape.
        """
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            msg = (
                "Invoice body does not match expected shape: "
                f"{e.error_count()} errors"
            )
            raise DecodeError(msg) from e

    def to_json(self) -> str:
        """Encode the invoice with camelCase field names."""
        return self.model_dump_json(by_alias=True)


def grouping_key(item: LineItem) -> str:
    """Key that merges per-region charges of one billed entity.

    Line items without a cluster group by sku alone, which merges every
    cluster-less charge of the same sku.
    """
    if item.cluster_name is not None:
        return f"{item.cluster_name}_{item.sku}"
    return item.sku


@dataclass
class AggregatedEntry:
    """One grouped row of the Total or Rate view.

    Fields start as a copy of the first line item seen for the key. The
    aggregator then accumulates sums into it according to the view.
    """

    sku: str
    unit: str
    quantity: float
    total_price_cents: int
    unit_price_dollars: float
    start_date: str
    end_date: str
    cluster_name: str | None = None
    group_name: str | None = None
    tags: Tags | None = field(default=None)

    @classmethod
    def from_line_item(cls, item: LineItem) -> "AggregatedEntry":
        """Start an entry from the first line item seen for its key."""
        return cls(
            sku=item.sku,
            unit=item.unit,
            quantity=item.quantity,
            total_price_cents=item.total_price_cents,
            unit_price_dollars=item.unit_price_dollars,
            start_date=item.start_date,
            end_date=item.end_date,
            cluster_name=item.cluster_name,
            group_name=item.group_name,
            tags=(
                {key: list(values) for key, values in item.tags.items()}
                if item.tags is not None
                else None
            ),
        )

    @property
    def project(self) -> str:
        """First value of the ``project`` tag, or "" when absent."""
        if not self.tags:
            return ""
        values = self.tags.get(PROJECT_TAG)
        if not values:
            return ""
        return values[0]
