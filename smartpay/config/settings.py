"""
Configuration Management for AI Smart Pay

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
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
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class StorageSettings(BaseSettings):
    """Local wallet storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WALLET_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("~/.ai-smart-pay"),
        description="Directory holding the wallet document and audit log"
    )
    wallet_filename: str = Field(
        default="wallet.json",
        description="Name of the wallet document inside data_dir"
    )
    audit_filename: str = Field(
        default="audit.jsonl",
        description="Name of the audit log inside data_dir"
    )

    @field_validator("data_dir")
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Expand ~ so the path is usable as-is."""
        return v.expanduser()

    @property
    def wallet_path(self) -> Path:
        return self.data_dir / self.wallet_filename

    @property
    def audit_path(self) -> Path:
        return self.data_dir / self.audit_filename


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

    app_name: str = Field(
        default="ai-smart-pay",
        description="Application name, used in backup filenames"
    )
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Recommendation thresholds
    high_value_purchase_threshold: Decimal = Field(
        default=Decimal("500"),
        gt=0,
        description="Purchases above this amount trigger the market card search"
    )
    default_purchase_amount: str = Field(
        default="100",
        description="Amount quoted to the AI when the user leaves it blank"
    )

    # Document upload limits
    max_document_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum attached document size in MB"
    )

    @property
    def max_document_size_bytes(self) -> int:
        """Get max document size in bytes."""
        return self.max_document_size_mb * 1024 * 1024


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
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries describing what failed. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
