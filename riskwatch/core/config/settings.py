# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for RiskWatch.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Scoring thresholds and the 7-day throttle window are deliberately not
configurable here; they live as constants next to the code that applies
them.

Example:
    >>> from riskwatch.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.risk_scan.max_concurrency)
    10
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OPERATOR_API_KEY = "change-this-in-production"


class DatabaseSettings(BaseSettings):
    """Database configuration for the learning platform store.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        dsn: Full SQLAlchemy URL overriding the components when set.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "riskwatch"
    password: SecretStr = SecretStr("riskwatch_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "learning_platform"
    dsn: str | None = None
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.dsn:
            return self.dsn
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class RedisSettings(BaseSettings):
    """Redis configuration for the push channel and message brokering.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
        max_connections: Maximum connection pool size.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr = SecretStr("")
    database: int = 0
    max_connections: int = 50

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        pwd = self.password.get_secret_value()
        auth = f":{pwd}@" if pwd else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.database}"


class PushSettings(BaseSettings):
    """Real-time push channel configuration.

    Attributes:
        enabled: Whether real-time push events are published at all.
        channel_prefix: Redis pub/sub channel prefix; the recipient id is appended.
    """

    model_config = SettingsConfigDict(
        env_prefix="PUSH_",
        extra="ignore",
    )

    enabled: bool = True
    channel_prefix: str = "riskwatch:notifications"


class RiskScanSettings(BaseSettings):
    """Batch risk scan configuration.

    Attributes:
        max_concurrency: Maximum students evaluated concurrently per course.
        course_timeout_seconds: Upper bound on a single course scan.
        schedule_cron: Cron expression for the daily scan of all courses.
        scheduler_enabled: Whether the API process runs the scheduler.
    """

    model_config = SettingsConfigDict(
        env_prefix="RISK_SCAN_",
        extra="ignore",
    )

    max_concurrency: int = Field(default=10, ge=1)
    course_timeout_seconds: float = Field(default=600.0, gt=0)
    schedule_cron: str = "0 6 * * *"
    scheduler_enabled: bool = True


class APISettings(BaseSettings):
    """Operator API configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        operator_api_key: Shared key expected in the X-API-Key header.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 34100
    operator_api_key: SecretStr = SecretStr(DEFAULT_OPERATOR_API_KEY)


class WorkerSettings(BaseSettings):
    """Background worker configuration.

    Attributes:
        processes: Number of worker processes.
        threads: Number of threads per process.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKER_",
        extra="ignore",
    )

    processes: int = 2
    threads: int = 4


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Database settings.
        redis: Redis settings.
        push: Real-time push settings.
        risk_scan: Batch scan settings.
        api: Operator API settings.
        worker: Background worker settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    push: PushSettings = Field(default_factory=PushSettings)
    risk_scan: RiskScanSettings = Field(default_factory=RiskScanSettings)
    api: APISettings = Field(default_factory=APISettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.api.operator_api_key.get_secret_value() == DEFAULT_OPERATOR_API_KEY:
                raise ValueError(
                    "Operator API key must be changed from default in production. "
                    "Set API_OPERATOR_API_KEY environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
