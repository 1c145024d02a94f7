"""
Shared configuration management for the Hybrid Authorization Service.
"""

from typing import List, Union

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHZ_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    application_id: str = Field(default="authz", description="Namespaces cache keys per application instance")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    postgres_dsn: str = Field(default="postgres://localhost:5432/authz")

    # Backend selection
    cache_backend: str = Field(default="redis", description="redis, memory or none")
    assignment_backend: str = Field(default="postgres", description="postgres or memory")
    assignment_table: str = Field(default="auth_assignment")

    # Hierarchy
    hierarchy_file: str = Field(default="data/auth.yaml")
    hierarchy_caching_duration: int = Field(default=3600, ge=0)

    # Assignments: False disables caching, 0 caches per request only,
    # a positive value also writes to the cache backend with that TTL.
    assignment_caching_duration: Union[int, bool] = Field(default=0)
    default_roles: List[str] = Field(default_factory=list)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
