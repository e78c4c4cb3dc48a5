"""Configuration models for the authenticated fetch layer."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from atlas_billing.fetch.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)


def normalize_base_url(url: str) -> str:
    """Require an http(s) URL and strip any trailing slash.

    Raises:
        ValueError: If the URL does not use http or https.
    """
    if not url.startswith(("https://", "http://")):
        msg = f"base_url must be an http(s) URL, got {url!r}"
        raise ValueError(msg)
    return url.rstrip("/")


class Credentials(BaseModel):
    """Programmatic API key pair used for digest authentication.

    Immutable after construction. The private key is held as a SecretStr
    so it never appears in reprs or logs.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    public_key: Annotated[str, Field(min_length=1)]
    private_key: SecretStr

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, v: SecretStr) -> SecretStr:
        """Reject an empty private key."""
        if not v.get_secret_value():
            msg = "private_key must not be empty"
            raise ValueError(msg)
        return v


class FetchConfig(BaseModel):
    """Configuration for the authenticated fetch layer.

    Built once at startup and shared read-only across poll cycles.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: Annotated[str, Field(min_length=1)] = DEFAULT_BASE_URL
    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = (
        DEFAULT_TIMEOUT_SECONDS
    )
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        DEFAULT_USER_AGENT
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and strip any trailing slash."""
        return normalize_base_url(v)

    def url_for(self, path: str) -> str:
        """Join the base URL and a request path.

        Args:
            path: Path relative to the API root, without a leading slash.

        Returns:
            Absolute request URL.
        """
        return f"{self.base_url}/{path}"
