"""Domain-specific error types for the authenticated fetch layer.

Every failure of a poll cycle surfaces as a subclass of ``AtlasApiError``.
Nothing in the fetch or aggregation path retries or swallows these; the
caller of the poll cycle decides what to do with them.
"""

from enum import Enum


class FetchErrorClass(str, Enum):
    """Classification of fetch errors for logging and metrics.

    - TRANSPORT: Network, TLS or protocol failure before a response
    - UNEXPECTED_CODE: First (unauthenticated) request did not return 401
    - MISSING_HEADER: 401 without a WWW-Authenticate challenge
    - AUTH_PROTOCOL: Malformed challenge or digest computation failure
    - NOT_FOUND: Authenticated request returned 404
    - FORBIDDEN: Authenticated request returned 403
    - UNAUTHORIZED: Credentials rejected (401 on the second request)
    - UNKNOWN_CODE: Any other status on the authenticated request
    - DECODE: Response body does not match the expected JSON shape
    - AGGREGATION: Line items cannot be aggregated consistently
    """

    TRANSPORT = "TRANSPORT"
    UNEXPECTED_CODE = "UNEXPECTED_CODE"
    MISSING_HEADER = "MISSING_HEADER"
    AUTH_PROTOCOL = "AUTH_PROTOCOL"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"
    UNKNOWN_CODE = "UNKNOWN_CODE"
    DECODE = "DECODE"
    AGGREGATION = "AGGREGATION"


class AtlasApiError(Exception):
    """Base exception for all poll cycle failures.

    Attributes:
        status_code: HTTP status code of the response that caused the
            error, or 0 when no response was received.
    """

    error_class = FetchErrorClass.TRANSPORT

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportError(AtlasApiError):
    """Network, TLS or HTTP protocol failure."""

    error_class = FetchErrorClass.TRANSPORT


class UnexpectedCodeError(AtlasApiError):
    """The unauthenticated request did not yield a 401 challenge."""

    error_class = FetchErrorClass.UNEXPECTED_CODE


class MissingHeaderError(AtlasApiError):
    """The 401 response carried no WWW-Authenticate header."""

    error_class = FetchErrorClass.MISSING_HEADER


class AuthProtocolError(AtlasApiError):
    """Malformed digest challenge or unsupported digest parameters."""

    error_class = FetchErrorClass.AUTH_PROTOCOL


class NotFoundError(AtlasApiError):
    """Resource not found (404), or no invoice id could be resolved."""

    error_class = FetchErrorClass.NOT_FOUND


class ForbiddenError(AtlasApiError):
    """Authenticated request was forbidden (403)."""

    error_class = FetchErrorClass.FORBIDDEN


class UnauthorizedError(AtlasApiError):
    """Credentials were rejected on the authenticated request (401)."""

    error_class = FetchErrorClass.UNAUTHORIZED


class UnknownCodeError(AtlasApiError):
    """Authenticated request returned a status with no specific mapping."""

    error_class = FetchErrorClass.UNKNOWN_CODE


class DecodeError(AtlasApiError):
    """Response body is not valid JSON or does not match the invoice shape."""

    error_class = FetchErrorClass.DECODE


class AggregationError(AtlasApiError):
    """Invoice line items cannot be aggregated consistently."""

    error_class = FetchErrorClass.AGGREGATION
