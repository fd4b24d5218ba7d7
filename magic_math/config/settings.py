"""Environment-driven configuration for the Magic Math service.

Every field maps to an upper-case environment variable of the same name
(`REDIS_URL`, `CACHE_TTL`, `RATE_LIMIT_WINDOW`, `RATE_LIMIT_MAX`, ...) and can
also come from a `.env` file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
ENVIRONMENTS = ("development", "staging", "production", "test")


class Settings(BaseSettings):
    """Service configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    environment: str = Field(default="development")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=5000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    cors_origins: str = Field(default="http://localhost:5000,http://127.0.0.1:5000")

    # External cache store
    # Empty string disables Redis entirely; every request then computes and
    # the rate limiter runs on its in-process fallback.
    redis_url: str = Field(default="redis://localhost:6379")
    # Connect/read timeout for every Redis call. Kept short so an unreachable
    # store degrades to "disconnected" instead of stalling requests.
    redis_timeout_seconds: float = Field(default=1.0)
    # How often a disconnected store is re-probed with PING.
    redis_reconnect_interval_seconds: float = Field(default=30.0)
    cache_ttl: int = Field(default=3600)
    cache_key_prefix: str = Field(default="magic_math:")

    # Rate limiting (fixed window)
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_window: int = Field(default=60000, description="Window length in milliseconds.")
    rate_limit_max: int = Field(default=100, description="Requests allowed per window.")
    rate_limit_key_prefix: str = Field(default="rate_limit:")

    # Compute
    large_input_threshold: int = Field(default=1000)
    max_batch_size: int = Field(default=100)

    @property
    def cors_origins_list(self) -> List[str]:
        if not self.cors_origins:
            return []
        origins = (part.strip() for part in self.cors_origins.split(","))
        return [origin for origin in origins if origin]

    @property
    def redis_enabled(self) -> bool:
        return bool(self.redis_url.strip())

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def docs_url(self) -> str | None:
        """OpenAPI docs are served everywhere except production."""
        return None if self.is_production else "/docs"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        env = (v or "").strip().lower()
        if env not in ENVIRONMENTS:
            raise ValueError(f"ENVIRONMENT must be one of: {', '.join(ENVIRONMENTS)}")
        return env

    @field_validator("cache_ttl", "rate_limit_window", "rate_limit_max", "max_batch_size")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:  # type: ignore[override]
        if v <= 0:
            raise ValueError(f"{info.field_name.upper()} must be a positive integer")
        return v

    @field_validator("large_input_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if v < 2:
            raise ValueError("LARGE_INPUT_THRESHOLD must be at least 2")
        return v

    @field_validator("redis_timeout_seconds", "redis_reconnect_interval_seconds")
    @classmethod
    def validate_interval(cls, v: float, info) -> float:  # type: ignore[override]
        if v <= 0:
            raise ValueError(f"{info.field_name.upper()} must be greater than zero")
        return v


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process; tests call ``get_settings.cache_clear()``."""
    return Settings()
