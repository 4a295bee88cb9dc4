"""Configuration package."""

from finance_ledger.config.settings import (
    AdmissionSettings,
    AppSettings,
    DatabaseSettings,
    GeminiSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AdmissionSettings",
    "AppSettings",
    "DatabaseSettings",
    "GeminiSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
