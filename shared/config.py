"""
Shared configuration management for the cacher library.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheConfig(BaseSettings):
    """Connection and behaviour settings for the cache client."""

    model_config = SettingsConfigDict(
        env_prefix="CACHER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    log_level: str = Field(default="info")

    # Store connection
    redis_url: str = Field(default="redis://localhost:6379/0")
    socket_timeout: float = Field(default=5.0, gt=0)
    socket_connect_timeout: float = Field(default=5.0, gt=0)
    health_check_interval: int = Field(default=30, ge=0)

    # SCAN COUNT hint used by prefix eviction
    scan_count: int = Field(default=100, gt=0)


def get_config(**overrides) -> CacheConfig:
    """Get cache configuration from the environment."""
    return CacheConfig(**overrides)
