"""
Shared configuration management for the upstream proxy.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROXY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Listener
    host: str = "0.0.0.0"
    port: int = Field(default=3000, validation_alias=AliasChoices("PROXY_PORT", "PORT", "port"))


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "service"


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
