"""
Settings Management

Provides centralized, type-safe agent configuration using Pydantic.
Supports environment variables, .env files, and hierarchical config.

Design decisions:
- Using pydantic-settings for validation and type coercion
- Immutable settings after initialization (frozen model)
- Local settings only; remote settings arrive in the ConnectReply
"""

import socket
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ErrorCollectorSettings(BaseSettings):
    """Error capture configuration."""

    model_config = SettingsConfigDict(env_prefix="APM_ERROR_COLLECTOR_", frozen=True)

    enabled: bool = Field(default=True, description="Store captured errors locally")
    capture_events: bool = Field(default=True, description="Emit one error event per stored error")
    ignore_status_codes: list[int] = Field(default_factory=list)


class TransactionEventsSettings(BaseSettings):
    """Transaction event configuration."""

    model_config = SettingsConfigDict(env_prefix="APM_TRANSACTION_EVENTS_", frozen=True)

    enabled: bool = Field(default=True)
    max_samples_stored: int = Field(default=10000, ge=0)


class ApplicationLoggingSettings(BaseSettings):
    """Application log forwarding and decoration."""

    model_config = SettingsConfigDict(env_prefix="APM_APPLICATION_LOGGING_", frozen=True)

    enabled: bool = Field(default=True)
    forwarding_enabled: bool = Field(default=True)
    local_decorating_enabled: bool = Field(default=False)
    max_samples_stored: int = Field(default=10000, ge=0)


class DistributedTracingSettings(BaseSettings):
    """Trace identifier assignment."""

    model_config = SettingsConfigDict(env_prefix="APM_DISTRIBUTED_TRACING_", frozen=True)

    enabled: bool = Field(default=True)


class AttributeSettings(BaseSettings):
    """User attribute limits."""

    model_config = SettingsConfigDict(env_prefix="APM_ATTRIBUTES_", frozen=True)

    enabled: bool = Field(default=True)
    max_user_attributes: int = Field(default=64, ge=0)


class AgentSettings(BaseSettings):
    """
    Master settings aggregator.

    This is the single source of truth for local agent configuration.
    Sub-settings are composed here to maintain clear boundaries.
    """

    model_config = SettingsConfigDict(
        env_prefix="APM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,  # Immutable after creation
    )

    # Entity metadata
    app_name: str = Field(default="My Application")
    hostname: str = Field(default_factory=socket.gethostname)
    host_display_name: str = Field(default="")

    # Redacts captured error messages
    high_security: bool = Field(default=False)

    # Agent's own log threshold
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Component settings (composed)
    error_collector: ErrorCollectorSettings = Field(default_factory=ErrorCollectorSettings)
    transaction_events: TransactionEventsSettings = Field(
        default_factory=TransactionEventsSettings
    )
    application_logging: ApplicationLoggingSettings = Field(
        default_factory=ApplicationLoggingSettings
    )
    distributed_tracing: DistributedTracingSettings = Field(
        default_factory=DistributedTracingSettings
    )
    attributes: AttributeSettings = Field(default_factory=AttributeSettings)


@lru_cache(maxsize=1)
def get_settings() -> AgentSettings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure only one settings instance exists.
    This is safe because settings are frozen/immutable.
    """
    return AgentSettings()
