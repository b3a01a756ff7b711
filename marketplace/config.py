"""
Application configuration.

Loads settings from environment variables with sensible defaults.
The settings object is built once at startup and passed to whatever needs it.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from marketplace.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: str = "*"
    frontend_url: str = "http://localhost:3000"

    # ==========================================================================
    # Database
    # ==========================================================================

    # mongodb:// or mongodb+srv:// selects MongoDB; empty keeps data in memory
    database_url: str = ""
    database_name: str = "marketplace"

    # ==========================================================================
    # Authentication
    # ==========================================================================

    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24
    password_hash_iterations: int = 100_000

    google_oauth_client_id: str = ""
    google_oauth_client_secret: str = ""
    google_oauth_redirect_uri: str = "http://localhost:5000/auth/google/callback"

    # ==========================================================================
    # Marketplace
    # ==========================================================================

    low_stock_threshold: int = 10
    imgbb_api_key: str = ""

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def use_mongo(self) -> bool:
        return self.database_url.startswith(("mongodb://", "mongodb+srv://"))

    def validate_startup(self) -> None:
        """
        Refuse to start without the secrets the auth layer depends on.

        Raises:
            ConfigurationError: naming every missing variable
        """
        required = {
            "JWT_SECRET_KEY": self.jwt_secret_key,
            "GOOGLE_OAUTH_CLIENT_ID": self.google_oauth_client_id,
            "GOOGLE_OAUTH_CLIENT_SECRET": self.google_oauth_client_secret,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
