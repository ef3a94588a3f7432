"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
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
    app_name: str = Field(default="poshchoice-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    max_request_body_size: int = Field(default=1_048_576, description="Maximum request body size in bytes")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,https://poshchoice.com.ng",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(..., description="Supabase signing key JWK (JSON string) for JWT token verification")

    # Authorization
    operator_roles: str = Field(
        default="admin,super admin",
        description="Comma-separated profile roles allowed to manage all orders",
    )

    # Orders
    order_number_prefix: str = Field(default="POSH", description="Brand code prefixed to every order number")
    order_sequence_name: str = Field(default="orderId", description="Sequence counter used for order numbers")
    order_number_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Fresh order numbers to draw before giving up on a duplicate-key conflict",
    )
    allow_guest_checkout: bool = Field(default=False, description="Accept orders from unauthenticated callers")

    # Public order tracking
    public_status_rate_limit_requests: int = Field(default=30, description="Public status lookups allowed per window per client")
    public_status_rate_limit_window_seconds: int = Field(default=60, description="Public status rate limit window in seconds")

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key for sending emails")
    email_from_address: str = Field(
        default="Posh Choice Store <orders@poshchoice.com.ng>",
        description="From address for transactional emails",
    )
    admin_emails: str = Field(default="", description="Comma-separated operator addresses notified about orders")
    notification_timeout_seconds: float = Field(default=10.0, description="Upper bound for a single email send")
    currency_symbol: str = Field(default="₦", description="Currency symbol used in notification emails")

    # Frontend
    order_tracking_url: str = Field(
        default="https://poshchoice.com.ng/app/trackorder",
        description="Public order tracking page linked from emails",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def admin_emails_list(self) -> list[str]:
        """Parse operator notification addresses into a list."""
        return [email.strip() for email in self.admin_emails.split(",") if email.strip()]

    @property
    def operator_roles_list(self) -> list[str]:
        """Parse operator roles into a normalized list."""
        return [role.strip().lower() for role in self.operator_roles.split(",") if role.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


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
