from __future__ import annotations

from collections.abc import Sequence

import structlog
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from simple_breaker.circuit_breaker import (
    BreakerListener,
    CircuitBreaker,
    CircuitBreakerConfig,
)
from simple_breaker.logging import configure_structlog, get_log_level_value

BREAKER_ENV_PREFIX = "CIRCUIT_BREAKER_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment-driven settings for one circuit breaker."""

    model_config = prefixed_settings_config(BREAKER_ENV_PREFIX)

    name: str = "default"
    failure_threshold: int = 5
    open_on_exhaustion: bool = False
    recovery_timeout: float = 30.0
    log_level: str = "INFO"

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip()
        if not normalized:
            raise ValueError("name must be non-empty")
        return normalized

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        get_log_level_value(value)
        return value.strip().upper()

    @model_validator(mode="after")
    def _validate_breaker_settings(self) -> BreakerSettings:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout must be >= 0")
        return self

    def breaker_config(self) -> CircuitBreakerConfig:
        """Build the breaker configuration described by these settings."""
        return CircuitBreakerConfig(
            failure_threshold=self.failure_threshold,
            open_on_exhaustion=self.open_on_exhaustion,
            recovery_timeout=self.recovery_timeout,
        )

    def configure_logging(self) -> structlog.stdlib.BoundLogger:
        """Configure process logging at ``log_level`` and return a logger."""
        return configure_structlog(log_level=self.log_level)


def build_circuit_breaker(
    settings: BreakerSettings,
    *,
    listeners: Sequence[BreakerListener] | None = None,
) -> CircuitBreaker:
    """Build a named circuit breaker from environment settings."""
    return CircuitBreaker(
        settings.name,
        config=settings.breaker_config(),
        listeners=listeners,
    )
