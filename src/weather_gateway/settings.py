from __future__ import annotations

from pydantic import BaseModel, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from weather_gateway.circuit_breaker import CircuitBreakerConfig
from weather_gateway.logging import get_log_level_value

ENV_PREFIX = "WEATHER_GATEWAY_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(
        env_prefix=prefix,
        env_nested_delimiter="__",
        case_sensitive=False,
    )


class ResourcePolicy(BaseModel):
    """Breaker and cache tuning for one resource type."""

    max_failures: int = 5
    open_timeout_ms: int = 30_000
    call_timeout_ms: int = 5_000
    cache_ttl_seconds: int = 0

    @model_validator(mode="after")
    def _validate_bounds(self) -> ResourcePolicy:
        if self.max_failures < 1:
            raise ValueError("max_failures must be >= 1")
        if self.open_timeout_ms < 0:
            raise ValueError("open_timeout_ms must be >= 0")
        if self.call_timeout_ms < 0:
            raise ValueError("call_timeout_ms must be >= 0")
        if self.cache_ttl_seconds < 0:
            raise ValueError("cache_ttl_seconds must be >= 0")
        return self

    def breaker_config(self) -> CircuitBreakerConfig:
        """Build breaker configuration, converting milliseconds to seconds."""
        return CircuitBreakerConfig(
            failure_threshold=self.max_failures,
            recovery_timeout=self.open_timeout_ms / 1000.0,
            call_timeout=self.call_timeout_ms / 1000.0,
        )


class WeatherPolicy(ResourcePolicy):
    """Forecast tuning; forecasts go stale within the hour."""

    cache_ttl_seconds: int = 3_600


class CityPolicy(ResourcePolicy):
    """City search tuning; locations rarely change."""

    cache_ttl_seconds: int = 604_800


class GatewaySettings(BaseSettings):
    """Process settings for the weather gateway."""

    model_config = prefixed_settings_config(ENV_PREFIX)

    api_uri: str
    api_key: str
    redis_url: str = "redis://localhost:6379/0"
    http_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    weather: WeatherPolicy = WeatherPolicy()
    city: CityPolicy = CityPolicy()

    @field_validator("api_uri", "api_key", mode="before")
    @classmethod
    def _validate_required_string(cls, value: object, info: ValidationInfo) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip()
        if not normalized:
            raise ValueError(f"{info.field_name} must be non-empty")
        return normalized

    @field_validator("api_uri")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        get_log_level_value(value)
        return value.strip().upper()

    @model_validator(mode="after")
    def _validate_gateway_settings(self) -> GatewaySettings:
        if self.http_timeout_seconds <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return self
