"""
Application settings with Pydantic v2 validation.

Loads configuration from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from slabstock.core.exceptions import ConfigurationError


class StorageSettings(BaseSettings):
    """Storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "slabstock.db"

    # SQLite settings
    pool_size: int = Field(default=5, gt=0)
    busy_timeout: int = Field(default=30000, ge=0)  # ms

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class ReservationSettings(BaseSettings):
    """Reservation lifecycle configuration."""

    model_config = SettingsConfigDict(env_prefix="RESERVATION_")

    default_ttl_days: int = Field(default=7, gt=0)

    # When enabled, ConfirmSale uses the industry price captured at reservation
    # time instead of the batch's current price.
    lock_price_at_reservation: bool = False


class SweeperSettings(BaseSettings):
    """Expiration sweeper configuration."""

    model_config = SettingsConfigDict(env_prefix="SWEEPER_")

    enabled: bool = True
    interval_seconds: float = Field(default=300.0, gt=0)
    run_on_start: bool = True


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Slabstock Inventory Engine"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Sub-settings
    storage: StorageSettings = Field(default_factory=StorageSettings)
    reservation: ReservationSettings = Field(default_factory=ReservationSettings)
    sweeper: SweeperSettings = Field(default_factory=SweeperSettings)

    @field_validator("storage", mode="before")
    @classmethod
    def ensure_data_dir(cls, v: Any) -> StorageSettings:
        if isinstance(v, dict):
            settings = StorageSettings(**v)
        else:
            settings = v or StorageSettings()
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        return settings


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get or create global settings instance.

    Raises:
        ConfigurationError: the environment holds invalid values.
    """
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e.error_count()} error(s)",
                details={
                    "errors": [
                        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                        for err in e.errors()
                    ]
                },
            ) from e
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
