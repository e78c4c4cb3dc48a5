"""Shared fixtures for exporter tests."""

from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from atlas_billing.billing.models import Invoice, LineItem
from atlas_billing.fetch.client import DigestFetcher, build_client
from atlas_billing.fetch.metrics import FetchMetrics
from atlas_billing.fetch.models import Credentials, FetchConfig


BASE_URL = "https://atlas.test/api/atlas/v1.0"
ORG_ID = "5f0c0ffee0ddba11"
CHALLENGE_HEADER = (
    'Digest realm="MMS Public API", domain="", '
    'nonce="OqfTVkVn7YJ1Jz8/tGBwl4bXCuCJ1ZCX", algorithm=MD5, '
    'qop="auth", stale=false'
)


@pytest.fixture(autouse=True)
def _reset_fetch_metrics() -> Iterator[None]:
    """Give every test a fresh metrics singleton."""
    FetchMetrics.reset()
    yield
    FetchMetrics.reset()


@pytest.fixture
def credentials() -> Credentials:
    """Test API key pair."""
    return Credentials(public_key="pubkey", private_key="privkey")  # noqa: S106


@pytest.fixture
def fetch_config() -> FetchConfig:
    """Fetch configuration pointing at a fake API."""
    return FetchConfig(base_url=BASE_URL, timeout_seconds=5.0)


@pytest.fixture
def make_fetcher(
    fetch_config: FetchConfig,
    credentials: Credentials,
) -> Iterator[Callable[[Callable[[httpx.Request], httpx.Response]], DigestFetcher]]:
    """Build DigestFetchers backed by an httpx.MockTransport handler."""
    clients: list[httpx.Client] = []

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
    ) -> DigestFetcher:
        client = build_client(fetch_config, transport=httpx.MockTransport(handler))
        clients.append(client)
        return DigestFetcher(fetch_config, credentials, client=client)

    yield factory
    for client in clients:
        client.close()


def challenge_then(
    final: Callable[[httpx.Request], httpx.Response],
    requests: list[httpx.Request] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Handler that challenges unauthenticated requests and delegates the rest."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if "authorization" not in request.headers:
            return httpx.Response(401, headers={"WWW-Authenticate": CHALLENGE_HEADER})
        return final(request)

    return handler


@pytest.fixture
def digest_handler() -> Callable[..., Callable[[httpx.Request], httpx.Response]]:
    """Expose challenge_then to tests."""
    return challenge_then


def line_item_data(**overrides: Any) -> dict[str, Any]:
    """Wire-format (camelCase) line item with sensible defaults."""
    data: dict[str, Any] = {
        "clusterName": "Cluster0",
        "created": "2024-03-06T04:12:55Z",
        "endDate": "2024-03-06T00:00:00Z",
        "groupName": "production",
        "quantity": 24.0,
        "sku": "ATLAS_AWS_INSTANCE_M10",
        "startDate": "2024-03-05T00:00:00Z",
        "totalPriceCents": 216,
        "unit": "server hours",
        "unitPriceDollars": 0.09,
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_line_item() -> Callable[..., LineItem]:
    """Build LineItems from snake_case overrides."""

    def factory(**overrides: Any) -> LineItem:
        base = {
            "cluster_name": "Cluster0",
            "created": "2024-03-06T04:12:55Z",
            "end_date": "2024-03-06T00:00:00Z",
            "group_name": "production",
            "quantity": 24.0,
            "sku": "ATLAS_AWS_INSTANCE_M10",
            "start_date": "2024-03-05T00:00:00Z",
            "total_price_cents": 216,
            "unit": "server hours",
            "unit_price_dollars": 0.09,
        }
        base.update(overrides)
        return LineItem(**base)

    return factory


@pytest.fixture
def make_invoice() -> Callable[[list[LineItem]], Invoice]:
    """Wrap line items in an invoice."""

    def factory(line_items: list[LineItem]) -> Invoice:
        return Invoice(
            amount_billed_cents=0,
            amount_paid_cents=0,
            created="2024-03-01T00:00:00Z",
            credits_cents=0,
            end_date="2024-04-01T00:00:00Z",
            id="65e11a3b0000000000000001",
            line_items=line_items,
        )

    return factory


@pytest.fixture
def line_item_payload() -> Callable[..., dict[str, Any]]:
    """Expose line_item_data to tests."""
    return line_item_data
