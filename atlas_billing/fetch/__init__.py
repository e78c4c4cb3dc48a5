"""Authenticated fetch layer for the Atlas API.

This module provides HTTP Digest Authentication (RFC 7616) fetches with:
- Challenge parsing and response computation
- A fixed two-request handshake per fetch, without retries
- A typed error taxonomy for every failure mode
- Header redaction for logging
- Metrics collection for observability
"""

from atlas_billing.fetch.client import DigestFetcher, build_client
from atlas_billing.fetch.digest import (
    Challenge,
    DigestResponse,
    parse_challenge,
    select_digest_challenge,
)
from atlas_billing.fetch.errors import (
    AggregationError,
    AtlasApiError,
    AuthProtocolError,
    DecodeError,
    FetchErrorClass,
    ForbiddenError,
    MissingHeaderError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
    UnexpectedCodeError,
    UnknownCodeError,
)
from atlas_billing.fetch.metrics import FetchMetrics
from atlas_billing.fetch.models import Credentials, FetchConfig
from atlas_billing.fetch.redact import redact_headers, summarize_digest_header


__all__ = [
    # Client
    "DigestFetcher",
    "build_client",
    # Digest codec
    "Challenge",
    "DigestResponse",
    "parse_challenge",
    "select_digest_challenge",
    # Config
    "Credentials",
    "FetchConfig",
    # Errors
    "AtlasApiError",
    "FetchErrorClass",
    "TransportError",
    "UnexpectedCodeError",
    "MissingHeaderError",
    "AuthProtocolError",
    "NotFoundError",
    "ForbiddenError",
    "UnauthorizedError",
    "UnknownCodeError",
    "DecodeError",
    "AggregationError",
    # Metrics
    "FetchMetrics",
    # Redaction
    "redact_headers",
    "summarize_digest_header",
]
