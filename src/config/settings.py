"""
Configuration Management for Tarushiru

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The only external dependency is the Gemini API; everything else
(the document file, the audit log) lives on local disk.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature (summaries read better slightly warm)"
    )


class StorageSettings(BaseSettings):
    """Local document storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path(".tarushiru"),
        description="Directory holding the persisted document and audit log"
    )
    document_key: str = Field(
        default="tarushiru_data",
        min_length=1,
        description="Storage key of the single JSON document"
    )
    audit_log_name: str = Field(
        default="audit_log.jsonl",
        description="File name of the append-only audit log"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a document write is attempted"
    )

    @field_validator('document_key')
    @classmethod
    def validate_document_key(cls, v: str) -> str:
        """The key becomes a file name, so path separators are not allowed."""
        if "/" in v or "\\" in v:
            raise ValueError(f"document_key must not contain path separators: {v}")
        return v

    @property
    def document_path(self) -> Path:
        """Path of the persisted document."""
        return self.data_dir / f"{self.document_key}.json"

    @property
    def audit_log_path(self) -> Path:
        """Path of the audit log."""
        return self.data_dir / self.audit_log_name


class AppSettings(BaseSettings):
    """Behavior of the app itself. No prefix: JOURNAL_TREND_WINDOW etc."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    debug_mode: bool = Field(
        default=False,
        description="Show the raw stored document on the profile screen"
    )

    # How much history is sent to the AI service
    journal_trend_window: int = Field(
        default=15,
        ge=1,
        le=100,
        description="Number of recent journal entries used for trend reports"
    )
    emotion_chart_window: int = Field(
        default=14,
        ge=1,
        le=365,
        description="Number of analyzed entries shown on the emotion chart"
    )
    asset_analysis_window: int = Field(
        default=24,
        ge=1,
        le=120,
        description="Number of months of asset history used for money reports"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Sub-settings are built on access, so a missing Gemini key only
    fails when the AI features ask for it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


SETTINGS_SECTIONS = ("gemini", "storage", "app")


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings. Tests call get_settings.cache_clear() after patching env."""
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Check each settings section.

    Returns {section: ok} plus {section}_error for the failing ones, for
    the connection status panel.
    """
    settings = get_settings()
    results: dict[str, object] = {}

    for section in SETTINGS_SECTIONS:
        try:
            getattr(settings, section)
        except ValidationError as e:
            results[section] = False
            results[f"{section}_error"] = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
        else:
            results[section] = True

    return results
