"""Exporter configuration."""

from atlas_billing.config.loader import ConfigValidationError, load_config
from atlas_billing.config.schema import ExporterConfig


__all__ = ["ConfigValidationError", "ExporterConfig", "load_config"]
