"""
Configuration Management for Voice Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, including the
processing policy that used to drift between copies of the pipeline.
One engine reads one versioned policy.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DateFallback(str, Enum):
    """What the normalizer does with a date it cannot resolve."""
    LENIENT = "lenient"  # replace with the anchor date
    STRICT = "strict"    # keep the token, validator reports it


class KeywordMatching(str, Enum):
    """How relative-day and category keywords are matched in free text."""
    WORD = "word"
    SUBSTRING = "substring"  # legacy behavior, over-matches longer words


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (extraction and transcription)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model used for field extraction"
    )
    transcription_model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model used for audio transcription"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


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

    # Sheet names within the spreadsheet
    records_sheet_name: str = Field(
        default="Records",
        description="Name of the sheet for expense and income records"
    )
    memberships_sheet_name: str = Field(
        default="Memberships",
        description="Name of the sheet binding actors to tenants and roles"
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


class ProcessingPolicy(BaseSettings):
    """
    Versioned policy for the normalization and extraction pipeline.

    Bump policy_version whenever a default changes so stored records can be
    traced back to the rules that produced them.
    """

    model_config = SettingsConfigDict(
        env_prefix="POLICY_",
        extra="ignore",
        frozen=True,
    )

    policy_version: str = Field(
        default="2024.1",
        description="Identifier of this rule set"
    )
    date_fallback: DateFallback = Field(
        default=DateFallback.LENIENT,
        description="Repair unresolvable dates with the anchor date, or report them"
    )
    keyword_matching: KeywordMatching = Field(
        default=KeywordMatching.WORD,
        description="Keyword matching mode for dates and classification"
    )
    extraction_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Retries with the simplified template after a parse failure"
    )
    transient_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per collaborator call on service errors"
    )
    retry_wait_multiplier: float = Field(
        default=1.0,
        ge=0.0,
        description="Exponential backoff multiplier in seconds"
    )
    default_currency: str = Field(
        default="EUR",
        min_length=3,
        max_length=3,
        description="ISO currency used when none is given"
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
        description="Root log level for structlog output"
    )

    # Audio upload limits
    max_upload_size_mb: int = Field(
        default=25,
        ge=1,
        le=100,
        description="Maximum audio upload size in MB"
    )
    supported_audio_formats: str = Field(
        default="audio/mpeg,audio/mp3,audio/wav,audio/x-wav,audio/ogg,audio/webm,audio/mp4,audio/m4a,audio/aac,audio/flac",
        description="Comma-separated list of accepted audio mime types"
    )

    # Sanity thresholds
    max_record_amount: float = Field(
        default=1000000.0,
        description="Amount above which a record is flagged for review"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_audio_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


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

    # Sub-settings load lazily so a partially configured environment
    # (no Gemini key in tests, no Sheets in local runs) still works.

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def policy(self) -> ProcessingPolicy:
        return ProcessingPolicy()

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

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" entry for each group that failed to load.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "google_sheets", "policy", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
