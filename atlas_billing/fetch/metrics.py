"""In-process counters for the authenticated fetch layer."""

from dataclasses import dataclass, field
from typing import ClassVar

from atlas_billing.fetch.errors import FetchErrorClass


@dataclass
class FetchMetrics:
    """Metrics for authenticated fetch operations.

    Singleton class that tracks request counts per status code, digest
    handshakes, failures per error class and cumulative duration.
    """

    http_requests_total: dict[int, int] = field(default_factory=dict)
    http_bytes_total: int = 0
    digest_handshakes_total: int = 0
    fetch_failures_total: dict[str, int] = field(default_factory=dict)
    fetch_duration_ms_total: float = 0.0
    fetch_count: int = 0

    _instance: ClassVar["FetchMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "FetchMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_request(self, status_code: int, bytes_received: int) -> None:
        """Record a completed HTTP exchange.

        Args:
            status_code: HTTP status code.
            bytes_received: Number of body bytes received.
        """
        self.http_requests_total[status_code] = (
            self.http_requests_total.get(status_code, 0) + 1
        )
        self.http_bytes_total += bytes_received

    def record_handshake(self) -> None:
        """Record a digest challenge that was answered."""
        self.digest_handshakes_total += 1

    def record_failure(self, error_class: FetchErrorClass) -> None:
        """Record a fetch failure.

        Args:
            error_class: Classification of the failure.
        """
        key = error_class.value
        self.fetch_failures_total[key] = self.fetch_failures_total.get(key, 0) + 1

    def record_duration(self, duration_ms: float) -> None:
        """Record the duration of one fetch call.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.fetch_duration_ms_total += duration_ms
        self.fetch_count += 1

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "http_requests_total": dict(self.http_requests_total),
            "http_bytes_total": self.http_bytes_total,
            "digest_handshakes_total": self.digest_handshakes_total,
            "fetch_failures_total": dict(self.fetch_failures_total),
            "fetch_duration_ms_total": self.fetch_duration_ms_total,
            "fetch_count": self.fetch_count,
            "fetch_duration_ms_avg": self.avg_duration_ms,
        }

    @property
    def avg_duration_ms(self) -> float:
        """Calculate average fetch duration.

        Returns:
            Average duration in milliseconds.
        """
        if self.fetch_count == 0:
            return 0.0
        return self.fetch_duration_ms_total / self.fetch_count
