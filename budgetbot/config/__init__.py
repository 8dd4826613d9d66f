"""Configuration package."""

from budgetbot.config.settings import (
    ApiSettings,
    AppSettings,
    CalibrationSettings,
    RetrySettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ApiSettings",
    "AppSettings",
    "CalibrationSettings",
    "RetrySettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
