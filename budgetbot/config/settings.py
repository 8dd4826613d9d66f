"""
Configuration Management for BudgetBot Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Thresholds that drive business decisions (severity tiers, the
correction tolerance) live next to the transport settings so that
every tunable the core depends on is visible in one place.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """Backend API connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETBOT_API_",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the BudgetBot server"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-request timeout; expiry surfaces as a timeout failure"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are joined as base_url + path, so drop any trailing slash."""
        return v.rstrip("/")


class CalibrationSettings(BaseSettings):
    """Wallet calibration thresholds."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETBOT_CALIBRATION_",
        extra="ignore"
    )

    tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Differences at or below this are treated as no change"
    )
    warning_threshold: Decimal = Field(
        default=Decimal("5"),
        ge=0,
        description="Percent change above which a delta is a warning"
    )
    critical_threshold: Decimal = Field(
        default=Decimal("10"),
        ge=0,
        description="Percent change above which a delta is critical"
    )
    reference_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=5,
        description="Currency all cross-currency amounts are normalized to"
    )

    @field_validator('reference_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode='after')
    def validate_thresholds(self) -> 'CalibrationSettings':
        if self.critical_threshold < self.warning_threshold:
            raise ValueError("Critical threshold cannot be below warning threshold")
        return self


class RetrySettings(BaseSettings):
    """Retry policy for retryable remote failures (receipt scanning)."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETBOT_RETRY_",
        extra="ignore"
    )

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts including the first one"
    )
    min_wait: float = Field(
        default=1.0,
        ge=0,
        description="Minimum backoff between attempts in seconds"
    )
    max_wait: float = Field(
        default=10.0,
        ge=0,
        description="Maximum backoff between attempts in seconds"
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
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for local structured logs"
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
    def api(self) -> ApiSettings:
        return ApiSettings()

    @property
    def calibration(self) -> CalibrationSettings:
        return CalibrationSettings()

    @property
    def retry(self) -> RetrySettings:
        return RetrySettings()

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


def validate_all_settings() -> dict[str, Union[bool, str]]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every group that failed to load.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("api", "calibration", "retry", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
