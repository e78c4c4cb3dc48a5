"""Exporter configuration loading from YAML."""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from atlas_billing.config.schema import ExporterConfig


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when configuration loading or validation fails."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


def load_config(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ExporterConfig:
    """Load and validate the exporter configuration.

    Args:
        path: Optional YAML file. Defaults apply when omitted.
        overrides: Values taking precedence over the file, e.g. CLI flags.
            None values are ignored.

    Returns:
        Validated ExporterConfig.

    Raises:
        ConfigValidationError: If the file is missing, not YAML, or invalid.
    """
    source = str(path) if path is not None else "<defaults>"
    log = logger.bind(component="config", config_path=source)

    raw: dict[str, Any] = {}
    if path is not None:
        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except FileNotFoundError as e:
            log.error("config_file_not_found", error=str(e))
            raise ConfigValidationError(
                [{"loc": "file", "msg": str(e), "type": "file_not_found"}], source
            ) from e
        except yaml.YAMLError as e:
            log.error("config_yaml_parse_error", error=str(e))
            raise ConfigValidationError(
                [{"loc": "file", "msg": str(e), "type": "yaml_error"}], source
            ) from e

        if not isinstance(parsed, dict):
            log.error("config_not_a_mapping")
            raise ConfigValidationError(
                [
                    {
                        "loc": "file",
                        "msg": "Top level must be a mapping",
                        "type": "type_error",
                    }
                ],
                source,
            )
        raw = parsed

    if overrides:
        raw.update(
            {key: value for key, value in overrides.items() if value is not None}
        )

    try:
        config = ExporterConfig.model_validate(raw)
    except ValidationError as e:
        errors = [
            {
                "loc": ".".join(str(loc) for loc in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        log.error(
            "config_validation_failed",
            validation_error_count=len(errors),
            errors=errors,
        )
        raise ConfigValidationError(errors, source) from e

    log.info(
        "config_loaded",
        base_url=config.base_url,
        mode=config.mode.value,
        poll_interval_seconds=config.poll_interval_seconds,
    )
    return config
