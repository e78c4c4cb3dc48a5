"""Application settings loading."""

from .app import AppSettings, SettingsError, get_settings


__all__ = ["AppSettings", "SettingsError", "get_settings"]
