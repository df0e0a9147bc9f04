"""
Configuration Management for the Festival Fund

Settings are read from the environment and an optional .env file through
pydantic-settings, one class per concern.

DESIGN DECISION: Only the Google Sheets settings have required fields.
The ledger, dashboard and number prefixes all have working defaults, so
tests and the in-memory fallback run with no configuration at all.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

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

    # Worksheets are named <prefix><collection>, e.g. "fund_payments"
    sheet_prefix: str = Field(
        default="fund_",
        description="Prefix for the worksheet of each collection"
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


class LedgerSettings(BaseSettings):
    """Account and transaction log configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    account_id: str = Field(
        default="main_account",
        description="Document ID of the organization's single account"
    )
    max_conflict_retries: int = Field(
        default=8,
        ge=1,
        le=100,
        description="Attempts at a balance write before giving up on version conflicts"
    )
    conflict_backoff_max_seconds: float = Field(
        default=0.05,
        ge=0.0,
        le=5.0,
        description="Upper bound of the random wait between conflicting attempts"
    )


class DashboardSettings(BaseSettings):
    """Dashboard list sizes."""

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_",
        extra="ignore"
    )

    upcoming_limit: int = Field(default=5, ge=1, le=100)
    recent_payments_limit: int = Field(default=10, ge=1, le=100)
    recent_transactions_limit: int = Field(default=10, ge=1, le=100)


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    currency_symbol: str = Field(default="₹")

    # Number prefixes: <prefix><ms timestamp><3 random digits>
    receipt_prefix: str = Field(default="LBC", pattern="^[A-Z]+$")
    invoice_prefix: str = Field(default="INV", pattern="^[A-Z]+$")
    transaction_prefix: str = Field(default="TXN", pattern="^[A-Z]+$")

    # Sanity ceiling for a single payment or expense
    max_amount: float = Field(
        default=10000000.0,
        description="Maximum reasonable single amount (for sanity checking)"
    )


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def dashboard(self) -> DashboardSettings:
        return DashboardSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "ledger", "dashboard", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
