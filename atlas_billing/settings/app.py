"""Application settings powered by Pydantic BaseSettings."""

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from atlas_billing.fetch.models import Credentials


class SettingsError(Exception):
    """Raised when required environment settings are missing or invalid."""


class AppSettings(BaseSettings):
    """Centralized environment configuration for Atlas credentials."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    public_key: str | None = Field(default=None, validation_alias="ATLAS_PUBLIC_KEY")
    private_key: SecretStr | None = Field(
        default=None, validation_alias="ATLAS_PRIVATE_KEY"
    )
    org_id: str | None = Field(default=None, validation_alias="ATLAS_ORG_ID")

    def credentials(self) -> Credentials:
        """Build the immutable credential pair.

        Raises:
            SettingsError: If either key is missing.
        """
        if not self.public_key or self.private_key is None:
            msg = "ATLAS_PUBLIC_KEY and ATLAS_PRIVATE_KEY must both be set"
            raise SettingsError(msg)
        try:
            return Credentials(public_key=self.public_key, private_key=self.private_key)
        except ValidationError as e:
            msg = f"Invalid Atlas credentials: {e.error_count()} errors"
            raise SettingsError(msg) from e

    def require_org_id(self) -> str:
        """Return the organization id.

        Raises:
            SettingsError: If ATLAS_ORG_ID is not set.
        """
        if not self.org_id:
            msg = "ATLAS_ORG_ID must be set"
            raise SettingsError(msg)
        return self.org_id


def get_settings(**overrides: str | None) -> AppSettings:
    """Get a settings instance.

    Args:
        **overrides: Values that take precedence over the environment,
            keyed by field name. None values are ignored.
    """
    settings = AppSettings()
    values: dict[str, str | SecretStr] = {
        key: value for key, value in overrides.items() if value is not None
    }
    if not values:
        return settings
    if "private_key" in values:
        values["private_key"] = SecretStr(str(values["private_key"]))
    return settings.model_copy(update=values)
