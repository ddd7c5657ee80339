"""Configuration management for Trip Ledger."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRIP_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Display settings
    default_currency: str = "USD"  # Used when a ledger file omits currency_code
    current_user_id: str | None = None  # Member whose "your balance" view is shown

    # Database path
    database_path: Path = Path.home() / ".trip_ledger" / "trip_ledger.db"


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the TRIP_LEDGER_* environment "
            f"variables and your .env file.\n"
            f"Error: {e}"
        ) from e
