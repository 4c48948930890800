"""Application configuration via pydantic-settings.

Connection details and secrets are loaded from environment variables (.env file).
Runtime-editable plugin options (roles to track, retention, access control)
live in the logify_options table instead — see src/admin/options.py.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Event store connection settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./logify.db",
        description="Async SQLAlchemy connection string",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


class CmsSettings(BaseSettings):
    """Where the CMS lives and how its admin screens are addressed."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    cms_base_url: str = Field(
        default="http://localhost:8080",
        description="Public site URL; the REST API is served under /wp-json",
    )
    cms_admin_url: str = Field(
        default="http://localhost:8080/wp-admin/",
        description="Where denied admin users are redirected",
    )
    cms_user: str = Field(default="", description="Account Logify uses for REST lookups")
    cms_app_password: str = Field(default="", description="Application password for cms_user")
    cms_timeout: float = Field(default=5.0, description="CMS REST API timeout in seconds")
    site_timezone: str = Field(default="UTC", description="IANA zone used to render timestamps")
    datetime_format: str = Field(default="%d/%m/%Y %H:%M", description="strftime format for log rows")
    known_roles: str = Field(
        default="administrator,editor,author,contributor,subscriber",
        description="Comma-separated roles accepted by the settings page",
    )

    @property
    def roles(self) -> list[str]:
        """Parse comma-separated known roles into a list."""
        return [r.strip() for r in self.known_roles.split(",") if r.strip()]

    @property
    def api_url(self) -> str:
        return f"{self.cms_base_url.rstrip('/')}/wp-json"


class SecuritySettings(BaseSettings):
    """Shared secrets."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    hook_secret: str = Field(
        default="",
        description="HMAC-SHA256 secret signing hook batches from the CMS",
    )


class ForwardingSettings(BaseSettings):
    """Remote collector that receives a copy of every logged event."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    forward_url: str = Field(default="", description="Collector endpoint; empty disables forwarding")
    forward_timeout: float = Field(default=10.0)


class Settings(BaseSettings):
    """Root settings composing all sub-settings.

    Usage:
        settings = Settings()
        settings.db.database_url
        settings.cms.site_timezone
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    retention_interval_seconds: int = Field(default=3600)

    # Composed settings (loaded from same .env)
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    cms: CmsSettings = Field(default_factory=CmsSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    forwarding: ForwardingSettings = Field(default_factory=ForwardingSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            msg = f"Invalid log level: {v}. Must be one of {valid}"
            raise ValueError(msg)
        return upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


# Module-level singleton — import this wherever settings are needed.
settings = Settings()
