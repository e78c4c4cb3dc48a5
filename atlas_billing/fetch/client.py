"""HTTP client performing the two-request Digest handshake."""

import time
from types import TracebackType

import httpx
import structlog

from atlas_billing.fetch.constants import (
    AUTHORIZATION_HEADER,
    HTTP_METHOD_GET,
    HTTP_STATUS_FORBIDDEN,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_OK,
    HTTP_STATUS_UNAUTHORIZED,
    WWW_AUTHENTICATE_HEADER,
)
from atlas_billing.fetch.digest import parse_challenge, select_digest_challenge
from atlas_billing.fetch.errors import (
    AtlasApiError,
    AuthProtocolError,
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


logger = structlog.get_logger()

_STATUS_ERRORS: dict[int, type[AtlasApiError]] = {
    HTTP_STATUS_NOT_FOUND: NotFoundError,
    HTTP_STATUS_FORBIDDEN: ForbiddenError,
    HTTP_STATUS_UNAUTHORIZED: UnauthorizedError,
}


def build_client(
    config: FetchConfig,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Build the reusable HTTPS client.

    Args:
        config: Fetch configuration.
        transport: Optional transport override (used by tests).

    Returns:
        Configured httpx.Client. Redirects are not followed so the
        challenge always comes from the requested URI.
    """
    return httpx.Client(
        timeout=config.timeout_seconds,
        headers={
            "User-Agent": config.user_agent,
            "Accept": "application/json",
        },
        follow_redirects=False,
        transport=transport,
    )


class DigestFetcher:
    """Fetches API resources behind HTTP Digest Authentication.

    Each call to ``fetch`` performs exactly two exchanges: an unauthenticated
    GET that must be answered with a 401 challenge, then the same GET with
    an ``Authorization`` header computed from that challenge. Challenges are
    never reused between calls and nothing is retried.
    """

    def __init__(
        self,
        config: FetchConfig,
        credentials: Credentials,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            config: Fetch configuration.
            credentials: API key pair used to answer challenges.
            client: Shared HTTP client; one is built from config if omitted.
        """
        self._config = config
        self._credentials = credentials
        self._owns_client = client is None
        self._client = client if client is not None else build_client(config)
        self._metrics = FetchMetrics.get_instance()
        self._log = logger.bind(component="fetch")

    def __enter__(self) -> "DigestFetcher":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this fetcher built it."""
        if self._owns_client:
            self._client.close()

    def fetch(self, path: str) -> bytes:
        """Fetch a resource relative to the API base URL.

        Args:
            path: Request path without the base URL or a leading slash,
                e.g. ``orgs/<id>/invoices/pending``.

        Returns:
            Body of the authenticated 200 response.

        Raises:
            TransportError: Network or TLS failure on either request.
            UnexpectedCodeError: First request did not return 401.
            MissingHeaderError: 401 without a WWW-Authenticate header.
            AuthProtocolError: Challenge could not be parsed or answered.
            NotFoundError: Authenticated request returned 404.
            ForbiddenError: Authenticated request returned 403.
            UnauthorizedError: Authenticated request returned 401.
            UnknownCodeError: Authenticated request returned another status.
        """
        start_time_ns = time.perf_counter_ns()
        url = self._config.url_for(path)
        log = self._log.bind(path=path)

        try:
            body = self._handshake(path, url, log)
        except AtlasApiError as exc:
            self._metrics.record_failure(exc.error_class)
            log.warning(
                "fetch_failed",
                error_class=exc.error_class.value,
                status_code=exc.status_code,
                error=str(exc),
            )
            raise
        finally:
            duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
            self._metrics.record_duration(duration_ms)

        log.info(
            "fetch_complete",
            bytes=len(body),
            duration_ms=round(duration_ms, 2),
        )
        return body

    def _handshake(
        self,
        path: str,
        url: str,
        log: structlog.stdlib.BoundLogger,
    ) -> bytes:
        """Run the challenge/response exchange for one URL."""
        log.debug("fetch_initial_request", url=url)
        initial = self._send(url, {}, log)

        if initial.status_code != HTTP_STATUS_UNAUTHORIZED:
            msg = (
                f"Expected 401 challenge from {url}, "
                f"got status {initial.status_code}"
            )
            raise UnexpectedCodeError(msg, status_code=initial.status_code)

        raw_challenge = select_digest_challenge(
            initial.headers.get_list(WWW_AUTHENTICATE_HEADER)
        )
        if raw_challenge is None:
            msg = "Initial request did not yield a WWW-Authenticate header"
            raise MissingHeaderError(msg, status_code=initial.status_code)

        challenge = parse_challenge(raw_challenge)
        log.debug(
            "fetch_challenge_received",
            **summarize_digest_header(raw_challenge),
        )

        answer = challenge.respond(
            username=self._credentials.public_key,
            password=self._credentials.private_key.get_secret_value(),
            method=HTTP_METHOD_GET,
            uri=path,
        )
        header_value = answer.to_header()
        if not header_value.isascii():
            msg = "Digest response contains non-ASCII characters"
            raise AuthProtocolError(msg)
        self._metrics.record_handshake()

        headers = {AUTHORIZATION_HEADER: header_value}
        log.debug(
            "fetch_authenticated_request",
            url=url,
            headers=redact_headers(headers),
            nc=answer.nc,
        )
        response = self._send(url, headers, log)

        if response.status_code == HTTP_STATUS_OK:
            return response.content

        error_type = _STATUS_ERRORS.get(response.status_code)
        if error_type is not None:
            msg = f"Status {response.status_code} for {url}"
            raise error_type(msg, status_code=response.status_code)

        log.error("fetch_bad_status_code", status_code=response.status_code)
        msg = f"Unhandled status code {response.status_code} for {url}"
        raise UnknownCodeError(msg, status_code=response.status_code)

    def _send(
        self,
        url: str,
        headers: dict[str, str],
        log: structlog.stdlib.BoundLogger,
    ) -> httpx.Response:
        """Send one GET request, mapping transport failures.

        Raises:
            TransportError: If no response could be obtained.
        """
        try:
            response = self._client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.error(
                "fetch_transport_error",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            msg = f"Request to {url} failed: {exc}"
            raise TransportError(msg) from exc

        self._metrics.record_request(response.status_code, len(response.content))
        return response
