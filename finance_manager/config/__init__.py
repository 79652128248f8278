"""Configuration package."""

from finance_manager.config.settings import (
    AnalyticsSettings,
    AppSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AnalyticsSettings",
    "AppSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
