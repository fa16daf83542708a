"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        DB_HOST: Database host (default: localhost)
        DB_PORT: Database port (default: 5432)
        DB_NAME: Database name (default: postgres)
        DB_USER: Database user (default: postgres)
        DB_PASS / DB_PASSWORD: Database password
        DB_POOL_MIN_CONNECTIONS: Connections opened at startup (default: 1)
        DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
        DB_POOL_ACQUIRE_TIMEOUT_SECONDS: Wait limit for a free connection (default: 10)
        DB_CONNECT_TIMEOUT_SECONDS: Timeout for opening a connection (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="postgres", description="Database name")
    user: str = Field(default="postgres", description="Database username")
    password: SecretStr = Field(
        default=SecretStr("agenspw"),
        validation_alias=AliasChoices("DB_PASS", "DB_PASSWORD"),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=1,
        description="Connections opened when the pool starts",
        ge=0,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )
    pool_acquire_timeout_seconds: float = Field(
        default=10.0,
        description="How long a caller waits for a free connection",
        gt=0,
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for establishing a physical connection",
        gt=0,
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
    def dsn(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.user}@{self.host}:{self.port}/{self.name}"


class GatewaySettings(BaseSettings):
    """Process-level settings for the gateway.

    Environment variables:
        PORT / GATEWAY_PORT: Listening port (default: 4000)
        GATEWAY_HOST: Listening interface (default: 0.0.0.0)
        GATEWAY_PEOPLE_GRAPH: Graph queried by /api/people (default: company)
        GATEWAY_EXPOSE_ERROR_DETAILS: Forward raw backend error text to clients
        GATEWAY_SHUTDOWN_TIMEOUT_SECONDS: Grace period for in-flight work
        GATEWAY_LOG_LEVEL: Minimum log level (default: info)
    """

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="Graph Query Gateway", description="Application name")
    host: str = Field(default="0.0.0.0", description="Listening interface")
    port: int = Field(
        default=4000,
        validation_alias=AliasChoices("PORT", "GATEWAY_PORT"),
        description="Listening port",
    )
    people_graph: str = Field(
        default="company",
        description="Graph queried by the people endpoint",
        min_length=1,
    )
    expose_error_details: bool = Field(
        default=False,
        description="Return raw backend error messages to clients",
    )
    shutdown_timeout_seconds: float = Field(
        default=30.0,
        description="How long shutdown waits for in-flight queries",
        gt=0,
    )
    log_level: str = Field(default="info", description="Minimum log level")


@lru_cache
def get_gateway_settings() -> GatewaySettings:
    """Get cached gateway settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return GatewaySettings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()
