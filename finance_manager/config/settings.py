"""
Configuration Management for Finance Manager

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here so the whole surface of tunables is
visible in one place and validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local document storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="json",
        pattern="^(json|memory)$",
        description="Storage backend: 'json' files on disk or 'memory'"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the JSON documents"
    )
    write_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a document write before giving up"
    )

    @field_validator('data_dir')
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        return v.expanduser()


class AnalyticsSettings(BaseSettings):
    """Dashboard and analytics configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_ANALYTICS_",
        extra="ignore"
    )

    monthly_window: int = Field(
        default=12,
        ge=1,
        le=120,
        description="Number of months in the monthly income/expense series"
    )
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Transactions shown in the recent list"
    )
    audit_scan_limit: int = Field(
        default=1000,
        ge=10,
        description="Audit events scanned when looking for incomplete operations"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG with the console renderer, overriding log_level and log_format"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum log level"
    )
    log_format: str = Field(
        default="json",
        pattern="^(json|console)$",
        description="Render logs as JSON lines or for the console"
    )

    # Ledger behaviour
    strict_status_updates: bool = Field(
        default=False,
        description="Raise UnknownEntity on status updates for unknown transactions"
    )

    # Defaults for a newly created personal account
    account_owner_name: str = Field(default="Owner")
    account_holder: str = Field(default="")
    account_bank_name: str = Field(default="")
    account_number: str = Field(default="")

    @field_validator('log_level', mode='before')
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def analytics(self) -> AnalyticsSettings:
        return AnalyticsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus {setting_name}_error
    entries for the failures. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "analytics", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
