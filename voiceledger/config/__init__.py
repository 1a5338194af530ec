"""Configuration package."""

from voiceledger.config.settings import (
    AppSettings,
    DateFallback,
    GeminiSettings,
    GoogleSheetsSettings,
    KeywordMatching,
    ProcessingPolicy,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DateFallback",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "KeywordMatching",
    "ProcessingPolicy",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
