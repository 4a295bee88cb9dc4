"""
Ledger Configuration

Every tunable of the ledger is read here, from environment variables
or a .env file, through pydantic-settings groups.

DESIGN DECISION: Groups load independently. The ledger runs with no
Gemini key at all; only receipt scanning needs one.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini receipt extraction configuration."""

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
        default="models/gemini-2.5-flash",
        description="Gemini model used to read receipts"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class DatabaseSettings(BaseSettings):
    """Relational store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite:///./ledger.db",
        description="SQLAlchemy database URL"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )


class AdmissionSettings(BaseSettings):
    """
    Admission gate configuration.

    The defaults describe the in-process token bucket: ten mutations,
    refilled in full every hour.
    """

    model_config = SettingsConfigDict(
        env_prefix="ADMISSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    capacity: int = Field(
        default=10,
        ge=1,
        description="Maximum tokens a user can hold"
    )
    refill_amount: int = Field(
        default=10,
        ge=1,
        description="Tokens added per refill interval"
    )
    refill_interval_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Length of one refill interval"
    )
    timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Gate checks slower than this are treated as denied"
    )
    cost_per_mutation: int = Field(
        default=1,
        ge=1,
        description="Tokens consumed by one create/update/delete"
    )


class AppSettings(BaseSettings):
    """Process-wide settings that belong to no collaborator."""

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
        description="Enable debug logging"
    )

    # Receipt upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum receipt file size in MB"
    )
    supported_receipt_types: str = Field(
        default="image/jpeg,image/png,image/webp,image/heic,application/pdf",
        description="Comma-separated list of accepted receipt media types"
    )

    @property
    def supported_types_list(self) -> list[str]:
        """Accepted media types, lowercased."""
        return [
            kind.strip().lower()
            for kind in self.supported_receipt_types.split(",")
            if kind.strip()
        ]

    @property
    def max_upload_size_bytes(self) -> int:
        """Upload limit in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """Entry point to every settings group."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Each group is built on access, so a missing key only fails its own group

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def admission(self) -> AdmissionSettings:
        return AdmissionSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Return the shared Settings instance.

    Tests call get_settings.cache_clear() between environment changes.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try loading every settings group.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the groups that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "database", "admission", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
