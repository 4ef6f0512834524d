"""
Configuration Management for Money Pro

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Storage location, blob keys and ledger thresholds are validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DATA_DIR = Path.home() / ".money_pro"


class StorageSettings(BaseSettings):
    """Local key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONEY_PRO_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        description="Directory holding one file per stored key"
    )

    # Keys of the stored blobs
    transactions_key: str = Field(
        default="SavedTransactions",
        description="Key of the encoded transaction collection"
    )
    balances_key: str = Field(
        default="SavedBalances",
        description="Key of the encoded balance collection"
    )
    audit_key: str = Field(
        default="AuditLog",
        description="Key of the encoded audit log"
    )

    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a blob write is attempted before failing"
    )
    audit_log_limit: int = Field(
        default=5000,
        ge=10,
        description="Maximum number of audit events kept (oldest dropped first)"
    )

    @field_validator("transactions_key", "balances_key", "audit_key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Keys become file names, so keep them to a safe alphabet."""
        v = v.strip()
        if not v or not all(c.isalnum() or c in "_.-" for c in v):
            raise ValueError(f"Invalid storage key: {v!r}")
        return v


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
    log_level: str = Field(
        default="INFO",
        description="Root log level for structured logging"
    )

    # Presentation of amounts in titles and log descriptions
    currency_symbol: str = Field(
        default="R",
        max_length=5,
        description="Currency symbol prefixed to amounts"
    )

    # Ledger behaviour
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many transactions the recent view returns"
    )
    transfer_keyword: str = Field(
        default="Transfer",
        min_length=1,
        description="Leading word of generated transfer titles"
    )

    # Validation thresholds
    large_amount_threshold: Decimal = Field(
        default=Decimal("1000000"),
        gt=0,
        description="Amounts above this are flagged for review"
    )
    future_date_tolerance_days: int = Field(
        default=1,
        ge=0,
        description="How many days in the future a transaction date can be"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    def format_amount(self, amount: Decimal) -> str:
        """Format an amount the way titles and descriptions show it."""
        return f"{self.currency_symbol}{amount:.2f}"


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
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus {setting_name_error: message}
    for every group that failed.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
