"""
Configuration management using Pydantic Settings
Handles environment variables and validation
"""
import os
from functools import lru_cache
from typing import Optional

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    testing: bool = Field(default=False)

    # Application
    app_name: str = "EnrichmentEngine"
    app_version: str = "0.1.0"

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0")

    # Enrichment
    enrichment_enabled: bool = Field(default=True)
    default_timeout_seconds: int = Field(default=30, gt=0, description="Provider fetch timeout")
    capture_raw_responses: bool = Field(default=False, description="Attach raw provider payloads to responses")

    # Batch processing
    max_batch_size: int = Field(default=100, gt=0)
    batch_parallelism: int = Field(default=10, gt=0)
    batch_fail_fast: bool = Field(default=False)

    # Cache
    cache_enabled: bool = Field(default=False)
    cache_backend: str = Field(default="memory", description="memory or redis")
    cache_ttl_seconds: int = Field(default=3600, ge=0)
    cache_key_failure_mode: str = Field(
        default="skip",
        description="skip: bypass cache when parameters cannot be hashed; fallback: legacy timestamp token",
    )

    # Providers
    provider_config_path: Optional[str] = Field(default=None, description="YAML file declaring providers")
    provider_tie_break: str = Field(
        default="greatest_name",
        description="greatest_name or registration_order for equal-priority providers",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text
    dependency_log_level: str = Field(default="WARNING", description="Level for redis, asyncio and yaml loggers")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @field_validator("log_level", "dependency_log_level")
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v

    @field_validator("cache_backend")
    @classmethod
    def validate_cache_backend(cls, v):
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("cache_backend must be 'memory' or 'redis'")
        return v

    @field_validator("cache_key_failure_mode")
    @classmethod
    def validate_cache_key_failure_mode(cls, v):
        v = v.lower()
        if v not in ("skip", "fallback"):
            raise ValueError("cache_key_failure_mode must be 'skip' or 'fallback'")
        return v

    @field_validator("provider_tie_break")
    @classmethod
    def validate_provider_tie_break(cls, v):
        v = v.lower()
        if v not in ("greatest_name", "registration_order"):
            raise ValueError("provider_tie_break must be 'greatest_name' or 'registration_order'")
        return v

    @field_validator("cache_enabled")
    @classmethod
    def validate_cache_enabled(cls, v, info):
        # Never talk to a real cache from CI runs
        if os.getenv("CI") == "true" and info.data.get("environment") == "test":
            return False
        return v

    @model_validator(mode="after")
    def validate_batch_settings(self):
        """Cross-field checks once every value is known"""
        if self.batch_parallelism > self.max_batch_size:
            raise ValueError("batch_parallelism cannot exceed max_batch_size")
        if self.environment == "production" and self.debug:
            raise ValueError("Production environment cannot run with DEBUG=true")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
