from __future__ import annotations

from pydantic import ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay_breaker.logging import get_log_level_value
from relay_breaker.relay.breaker import FallbackFunc, RelayConfig


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class RelaySettings(BaseSettings):
    """Relay tuning loaded from ``RELAY_*`` environment variables.

    Durations are seconds. Services running several relays can subclass with
    ``model_config = prefixed_settings_config("PAYMENTS_RELAY_")``.
    """

    model_config = prefixed_settings_config("RELAY_")

    failure_threshold: int = 5
    cool_down_period: float = 30.0
    execution_timeout: float = 10.0
    use_exponential_backoff: bool = False
    max_cooldown: float = 600.0
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip().upper()
        get_log_level_value(normalized)
        return normalized

    @field_validator("cool_down_period", "max_cooldown")
    @classmethod
    def _validate_non_negative(cls, value: float, info: ValidationInfo) -> float:
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @model_validator(mode="after")
    def _validate_relay_settings(self) -> RelaySettings:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.execution_timeout <= 0:
            raise ValueError("execution_timeout must be > 0")
        return self

    def relay_config(self, on_fallback: FallbackFunc | None = None) -> RelayConfig:
        """Build a ``RelayConfig`` from these settings."""
        return RelayConfig(
            failure_threshold=self.failure_threshold,
            cool_down_period=self.cool_down_period,
            execution_timeout=self.execution_timeout,
            use_exponential_backoff=self.use_exponential_backoff,
            max_cooldown=self.max_cooldown,
            on_fallback=on_fallback,
        )
