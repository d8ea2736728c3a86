"""Centralized settings management for the event aggregation service."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import make_url


class Settings(BaseSettings):
    """
    Application settings powered by pydantic-settings.

    Loads configuration from environment variables and a .env file located
    at the project root.
    """

    # -------------------------------------------------------------------------
    # ENVIRONMENT
    # -------------------------------------------------------------------------
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False

    # -------------------------------------------------------------------------
    # HOST EVENT DATABASE
    # -------------------------------------------------------------------------
    DATABASE_URL: str | None = None

    # -------------------------------------------------------------------------
    # PROVIDER CREDENTIALS
    # -------------------------------------------------------------------------
    TICKETMASTER_API_KEY: SecretStr | None = None
    YELP_API_KEY: SecretStr | None = None
    AMADEUS_CLIENT_ID: SecretStr | None = None
    AMADEUS_CLIENT_SECRET: SecretStr | None = None

    # -------------------------------------------------------------------------
    # GEOCODING
    # -------------------------------------------------------------------------
    GEOCODING_ENABLED: bool = True
    GEOCODING_USER_AGENT: str = "eventradar-aggregator"
    GEOCODING_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # -------------------------------------------------------------------------
    # SESSION STORE
    # -------------------------------------------------------------------------
    SESSION_STORE: str = "memory"  # "memory" | "csv"
    SESSION_STORE_DIR: Path = Path("session_files")

    # -------------------------------------------------------------------------
    # PATHS
    # -------------------------------------------------------------------------
    # BASE_DIR points to the project root
    BASE_DIR: Path = Path(__file__).resolve().parents[2]

    AGGREGATION_CONFIG_PATH: Path = Path(__file__).resolve().parent / "aggregation.yaml"
    CATEGORY_MAPPING_PATH: Path = (
        Path(__file__).resolve().parent / "category_mapping.yaml"
    )

    # -------------------------------------------------------------------------
    # CONFIGURATION
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        # Allow extra fields in .env but ignore them in the model
        extra="ignore",
    )

    def get_psycopg2_params(self) -> dict:
        """
        Parse DATABASE_URL into psycopg2-compatible connection parameters.

        Uses sqlalchemy.make_url for robust parsing of complex connection strings.

        Returns
        -------
        dict
            psycopg2 connection arguments (host, port, dbname, user, password).

        Raises
        ------
        ValueError
            If DATABASE_URL is not configured.
        """
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL is not configured")

        url = make_url(self.DATABASE_URL)
        return {
            "host": url.host,
            "port": url.port,
            "dbname": url.database,
            "user": url.username,
            "password": url.password,
        }

    def secret(self, name: str) -> str | None:
        """Return the plain value of a SecretStr setting, or None when unset."""
        value = getattr(self, name, None)
        if value is None:
            return None
        if isinstance(value, SecretStr):
            return value.get_secret_value() or None
        return str(value) or None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns
    -------
    Settings
        The singleton settings instance.
    """
    return Settings()
