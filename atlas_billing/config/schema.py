"""Exporter configuration schema."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from atlas_billing.billing.api import InvoiceMode
from atlas_billing.fetch.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)
from atlas_billing.fetch.models import FetchConfig, normalize_base_url


DEFAULT_POLL_INTERVAL_SECONDS = 3600
DEFAULT_LISTEN_PORT = 9184
DEFAULT_LISTEN_ADDRESS = "0.0.0.0"  # noqa: S104


class ExporterConfig(BaseModel):
    """Configuration for the billing exporter.

    Credentials are deliberately absent; they come from the environment.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: Annotated[str, Field(min_length=1)] = DEFAULT_BASE_URL
    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = (
        DEFAULT_TIMEOUT_SECONDS
    )
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        DEFAULT_USER_AGENT
    )
    poll_interval_seconds: Annotated[int, Field(ge=60)] = DEFAULT_POLL_INTERVAL_SECONDS
    listen_port: Annotated[int, Field(ge=1, le=65535)] = DEFAULT_LISTEN_PORT
    listen_address: Annotated[str, Field(min_length=1)] = DEFAULT_LISTEN_ADDRESS
    mode: InvoiceMode = InvoiceMode.AUTO

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and strip any trailing slash."""
        return normalize_base_url(v)

    def fetch_config(self) -> FetchConfig:
        """Derive the fetch layer configuration."""
        return FetchConfig(
            base_url=self.base_url,
            timeout_seconds=self.timeout_seconds,
            user_agent=self.user_agent,
        )
