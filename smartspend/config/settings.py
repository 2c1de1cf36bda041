"""
Configuration Management for SmartSpend

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Thresholds used by the insight engine, storage locations and the
ledger's sentinel names all live in one place and are validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Local key-value store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTSPEND_STORE_",
        extra="ignore"
    )

    data_dir: str = Field(
        default=".smartspend",
        description="Directory holding one JSON file per store key"
    )
    ledger_key: str = Field(
        default="smartspend",
        min_length=1,
        description="Store key of the ledger document"
    )
    filter_month_key: str = Field(
        default="filterMonth",
        min_length=1,
        description="Store key of the selected browsing month"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed write is attempted"
    )

    @field_validator('data_dir')
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        """Warn if the data directory points at a file (but don't fail)."""
        if Path(v).is_file():
            import warnings
            warnings.warn(
                f"Store data directory {v} is a file. "
                "Point SMARTSPEND_STORE_DATA_DIR at a directory."
            )
        return v

    @property
    def data_path(self) -> Path:
        """Get the data directory as a Path."""
        return Path(self.data_dir).expanduser()


class InsightSettings(BaseSettings):
    """Thresholds for the heuristic insight engine."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTSPEND_INSIGHTS_",
        extra="ignore"
    )

    min_transactions: int = Field(
        default=5,
        ge=0,
        description="Below this many transactions only 'not enough data' is shown"
    )
    month_trend_threshold_pct: float = Field(
        default=15.0,
        ge=0.0,
        description="Month-over-month change (percent) that triggers a note"
    )
    category_trend_threshold_pct: float = Field(
        default=30.0,
        ge=0.0,
        description="Per-category increase (percent) that triggers a note"
    )
    habit_min_count: int = Field(
        default=6,
        ge=1,
        description="Expense count in one category that counts as a habit"
    )
    savings_rate: float = Field(
        default=0.10,
        gt=0.0,
        le=1.0,
        description="Share of monthly spend used for the savings tip"
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

    # Ledger defaults
    default_currency: str = Field(
        default="₹",
        min_length=1,
        description="Currency symbol for new ledgers"
    )
    default_account_name: str = Field(
        default="Cash",
        min_length=1,
        description="Account name given to transactions whose account was deleted"
    )
    fallback_category_name: str = Field(
        default="Other",
        min_length=1,
        description="Category given to transactions whose category was deleted"
    )
    fallback_category_icon: str = Field(
        default="🎯",
        description="Icon given to transactions whose category was deleted"
    )
    default_category_color: str = Field(
        default="#64748b",
        pattern="^#[0-9a-fA-F]{6}$",
        description="Color backfilled onto categories saved without one"
    )
    audit_history_size: int = Field(
        default=200,
        ge=0,
        le=10000,
        description="How many audit events are kept in memory"
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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def insights(self) -> InsightSettings:
        return InsightSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every section that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("store", "insights", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
