"""Configuration and settings management using pydantic-settings."""
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"


class Settings(BaseSettings):
    """Application settings with environment variable loading."""

    model_config = SettingsConfigDict(
        env_prefix="COLLECTORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Core service settings
    env: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Log level")

    # Database settings
    database_url: str = Field(
        default="sqlite:///./data/collectory.db",
        description="SQLAlchemy database URL",
    )

    # Module pipeline locations
    modules_dir: Path = Field(
        default=RESOURCES_DIR / "modules",
        description="Directory holding the bundled module documents",
    )
    module_schema_path: Path = Field(
        default=RESOURCES_DIR / "schema" / "module-v1.xsd",
        description="XSD used to validate raw module documents",
    )
    contract_schema_path: Path = Field(
        default=RESOURCES_DIR / "schema" / "module-contract-v1.schema.json",
        description="JSON Schema used to validate compiled contracts",
    )
    import_dir: Path = Field(
        default=Path("./data/modules-imported"),
        description="Directory where imported module documents are stored",
    )

    # Provider lookup settings
    lookup_max_workers: int = Field(
        default=8,
        description="Maximum concurrent provider calls per lookup",
    )
    lookup_timeout_s: float = Field(
        default=30.0,
        description="Deadline for collecting all provider results of one lookup",
    )
    provider_timeout_s: float = Field(
        default=10.0,
        description="Network timeout for a single provider HTTP call",
    )
    provider_user_agent: str = Field(
        default="collectory/0.1",
        description="User-Agent sent to metadata providers",
    )
    google_books_api_key: SecretStr | None = Field(
        default=None,
        description="Optional Google Books API key",
    )

    @field_validator("lookup_max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        """Validate that the fan-out limit is positive."""
        if v <= 0:
            raise ValueError("lookup_max_workers must be positive")
        return v

    @field_validator("lookup_timeout_s")
    @classmethod
    def validate_lookup_timeout(cls, v: float) -> float:
        """Validate that the lookup deadline is positive."""
        if v <= 0:
            raise ValueError("lookup_timeout_s must be positive")
        return v


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
