"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="matcha-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=5000, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")

    # JWT verification
    jwt_algorithm: str = Field(default="HS256", description="Algorithm used to sign access tokens")
    jwt_secret: str = Field(default="", description="Shared secret for HS* access tokens")
    jwt_signing_key_jwk: str = Field(
        default="",
        description="Signing key JWK (JSON string) for asymmetric access tokens",
    )

    # Requests
    max_request_body_size: int = Field(
        default=26 * 1024 * 1024,
        description="Maximum accepted request body size in bytes",
    )

    # Photos
    max_photos_per_user: int = Field(default=5, description="Maximum number of photos a user can hold")
    max_photo_size_bytes: int = Field(default=5 * 1024 * 1024, description="Maximum size of a single photo upload")

    # Geolocation
    geolocation_primary_url: str = Field(
        default="http://ipapi.co",
        description="Primary IP geolocation service base URL",
    )
    geolocation_fallback_url: str = Field(
        default="http://ip-api.com",
        description="Fallback IP geolocation service base URL",
    )
    geolocation_timeout_seconds: float = Field(default=5.0, description="Client-side timeout for IP lookups")
    default_latitude: float = Field(default=48.8566, description="Latitude used when every lookup fails")
    default_longitude: float = Field(default=2.3522, description="Longitude used when every lookup fails")
    default_city: str = Field(default="Paris", description="City used when every lookup fails")
    default_country: str = Field(default="France", description="Country used when every lookup fails")

    # Profile wizard
    wizard_ttl_seconds: int = Field(default=3600, description="Idle lifetime of a wizard draft")
    wizard_cleanup_interval_seconds: int = Field(default=300, description="Interval between expired wizard sweeps")
    wizard_max_sessions: int = Field(default=1000, description="Maximum wizard drafts kept in memory")
    wizard_include_personal_info: bool = Field(
        default=False,
        description="Include the separate personal-info step in the wizard",
    )

    # Browsing
    browse_default_limit: int = Field(default=20, description="Default page size for browsing")
    browse_max_limit: int = Field(default=100, description="Maximum page size for browsing")
    browse_fetch_limit: int = Field(default=500, description="Maximum candidates fetched before ranking")

    @model_validator(mode="after")
    def check_jwt_key(self) -> "Settings":
        """Require the key material matching the configured JWT algorithm.

        HS* algorithms verify with ``jwt_secret``; every other algorithm
        verifies with the public part of ``jwt_signing_key_jwk``.
        """
        if self.uses_shared_secret and not self.jwt_secret and self.is_production:
            raise ValueError("JWT_SECRET is required for HS* algorithms in production")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def uses_shared_secret(self) -> bool:
        """Check if access tokens are signed with a shared secret."""
        return self.jwt_algorithm.upper().startswith("HS")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
