"""Runtime settings, read from CLUSTER_CONFIG_* environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from cluster_config.cache import DEFAULT_TTL_SECONDS, CachePolicy

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ClusterConfigSettings(BaseSettings):
    """Settings for the configuration resolution engine."""

    stale_cache_enabled: bool = Field(
        default=True, description="Memoize staleness results per component"
    )
    stale_cache_ttl_sec: float = Field(
        default=DEFAULT_TTL_SECONDS,
        gt=0,
        description="Seconds a cached staleness result stays valid after it is written",
    )
    log_level: str = Field(default="INFO", description="Root log level for the CLI")

    model_config = {"env_prefix": "CLUSTER_CONFIG_"}

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value}. Must be one of {sorted(_LOG_LEVELS)}")
        return level

    def cache_policy(self) -> CachePolicy:
        return CachePolicy(enabled=self.stale_cache_enabled, ttl_seconds=self.stale_cache_ttl_sec)
