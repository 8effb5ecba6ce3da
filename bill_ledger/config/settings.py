"""
Configuration Management for Bill Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here, so the storage backend and the
consistency switches of the repository are visible in one place and
validated at startup.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageBackend(str, Enum):
    """Persistence backends the application can be wired with."""
    MEMORY = "memory"
    GOOGLE_SHEETS = "google_sheets"


class GoogleSheetsSettings(BaseSettings):
    """Where the google_sheets backend keeps its worksheets."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per entity, plus the audit trail
    bills_sheet_name: str = Field(
        default="Bills",
        description="Name of the sheet for bills"
    )
    users_sheet_name: str = Field(
        default="Users",
        description="Name of the sheet holding users"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet holding transactions"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Application and repository behaviour.

    Read from the environment, then from .env in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # HTTP surface
    api_prefix: str = Field(
        default="/api",
        description="Path prefix the bills router is mounted under"
    )

    # Persistence
    storage_backend: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Which persistence backend to use"
    )

    # Consistency switches
    enforce_referential_integrity: bool = Field(
        default=True,
        description="Reject bill creation when the user or transaction does not exist"
    )
    optimistic_concurrency: bool = Field(
        default=True,
        description="Make bill updates conditional on the version that was read"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator('api_prefix')
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        """Prefix is either empty or starts with a slash and has no trailing one."""
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v


class Settings(BaseSettings):
    """
    Settings root.

    Entry point for every settings group used by the ledger.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so a memory-backed deployment
    # does not need Google credentials.

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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

    Returns a dict of {setting_name: is_valid}, with an
    additional "<name>_error" entry for each failure.
    Google Sheets settings are only checked when that backend is selected.
    """
    results = {}

    settings = get_settings()

    try:
        app_settings = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)
        return results

    if app_settings.storage_backend == StorageBackend.GOOGLE_SHEETS:
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
