"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Control database connection settings.

    The control database holds tenants and pending organizations. Tenant
    databases live on the same server and reuse these credentials.

    Environment variables:
        POS_DB_HOST: Database host (default: localhost)
        POS_DB_PORT: Database port (default: 5432)
        POS_DB_DATABASE: Control database name (default: liquor_pos)
        POS_DB_USERNAME: Database user (default: liquor_pos)
        POS_DB_PASSWORD: Database password (required in production)
        POS_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        POS_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="POS_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="liquor_pos", description="Control database name")
    username: str = Field(default="liquor_pos", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class TenantDatabaseSettings(BaseSettings):
    """Per-tenant connection management settings.

    Environment variables:
        POS_TENANT_DATABASE_PREFIX: Prefix for tenant database names (default: tenant_)
        POS_TENANT_POOL_SIZE: Connections per tenant engine (default: 5)
        POS_TENANT_CONNECT_ATTEMPTS: Ping attempts before giving up (default: 3)
        POS_TENANT_CONNECT_BACKOFF_SECONDS: Base backoff between attempts
            (default: 0.2)
        POS_TENANT_IDLE_TIMEOUT_SECONDS: Idle time before a handle is closed
            (default: 600)
        POS_TENANT_MONITOR_INTERVAL_SECONDS: Sampling/cleanup interval (default: 60)
        POS_TENANT_METRICS_HISTORY_SIZE: Samples kept in the ring buffer (default: 100)
        POS_TENANT_HIGH_CONNECTION_WARNING: Open handles that trigger a warning
            (default: 20)
    """

    model_config = SettingsConfigDict(
        env_prefix="POS_TENANT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_prefix: str = Field(
        default="tenant_",
        description="Prefix for tenant database names",
        pattern=r"^[a-z_][a-z0-9_]*$",
    )
    pool_size: int = Field(default=5, ge=1, le=50)
    connect_attempts: int = Field(default=3, ge=1, le=10)
    connect_backoff_seconds: float = Field(default=0.2, ge=0.0, le=30.0)
    idle_timeout_seconds: float = Field(default=600.0, gt=0.0)
    monitor_interval_seconds: float = Field(default=60.0, gt=0.0)
    metrics_history_size: int = Field(default=100, ge=1, le=10_000)
    high_connection_warning: int = Field(default=20, ge=1)


class TransactionSettings(BaseSettings):
    """Transactional workflow settings.

    Environment variables:
        POS_TXN_CONFLICT_RETRY_ATTEMPTS: Total attempts for a conflicting unit of
            work (default: 3)
        POS_TXN_CONFLICT_BACKOFF_SECONDS: Base backoff, doubled per attempt
            (default: 0.05)
        POS_TXN_MAX_BACKOFF_SECONDS: Upper bound for a single backoff (default: 1.0)
    """

    model_config = SettingsConfigDict(
        env_prefix="POS_TXN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    conflict_retry_attempts: int = Field(default=3, ge=1, le=10)
    conflict_backoff_seconds: float = Field(default=0.05, ge=0.0, le=10.0)
    max_backoff_seconds: float = Field(default=1.0, ge=0.0, le=60.0)

    @model_validator(mode="after")
    def validate_backoff(self) -> "TransactionSettings":
        """Validate the backoff ceiling is not below the base."""
        if self.max_backoff_seconds < self.conflict_backoff_seconds:
            raise ValueError(
                f"max_backoff_seconds ({self.max_backoff_seconds}) must be >= "
                f"conflict_backoff_seconds ({self.conflict_backoff_seconds})"
            )
        return self


class OrganizationSettings(BaseSettings):
    """Organization signup settings.

    Environment variables:
        POS_ORG_VERIFICATION_TOKEN_TTL_HOURS: Lifetime of a verification token
            (default: 24)
        POS_ORG_VERIFICATION_URL_TEMPLATE: Link sent to the signup email, with a
            {token} placeholder
    """

    model_config = SettingsConfigDict(
        env_prefix="POS_ORG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    verification_token_ttl_hours: int = Field(default=24, ge=1, le=24 * 30)
    verification_url_template: str = Field(
        default="http://localhost:3000/verify-organization?token={token}",
        description="Verification link sent after signup",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Liquor POS API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_tenant_database_settings() -> TenantDatabaseSettings:
    """Get cached tenant connection settings."""
    return TenantDatabaseSettings()


@lru_cache
def get_transaction_settings() -> TransactionSettings:
    """Get cached transactional workflow settings."""
    return TransactionSettings()


@lru_cache
def get_organization_settings() -> OrganizationSettings:
    """Get cached organization signup settings."""
    return OrganizationSettings()
