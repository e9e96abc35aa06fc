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
    app_name: str = Field(default="rostering-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(..., description="Supabase signing key JWK (JSON string) for JWT token verification")

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key; empty means log-only delivery")
    email_from_address: str = Field(
        default="Rostering <noreply@example.com>",
        description="From address for transactional emails",
    )
    email_send_timeout_seconds: float = Field(default=10.0, description="Upper bound on a single email send")

    # Frontend
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Frontend application URL for invitation links",
    )

    # Invitations
    invitation_default_expiry_days: int = Field(default=7, description="Default invitation lifetime in days")
    invitation_min_expiry_days: int = Field(default=1, description="Shortest lifetime accepted from the API")
    invitation_max_expiry_days: int = Field(default=30, description="Longest lifetime accepted from the API")

    # Join flow
    join_verify_membership: bool = Field(
        default=False,
        description="Re-read the membership row after the upsert and fail the join if it is missing",
    )
    join_success_redirect: str = Field(
        default="/dashboard?joined=true",
        description="Where the viewer is sent after joining a company",
    )

    @model_validator(mode="after")
    def check_expiry_bounds(self) -> "Settings":
        """Make sure the default lifetime sits inside the accepted range."""
        if not (
            self.invitation_min_expiry_days
            <= self.invitation_default_expiry_days
            <= self.invitation_max_expiry_days
        ):
            raise ValueError(
                "invitation_default_expiry_days must be between "
                "invitation_min_expiry_days and invitation_max_expiry_days"
            )
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
    def email_delivery_enabled(self) -> bool:
        """Whether invitation emails are actually handed to Resend."""
        return bool(self.resend_api_key)


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
