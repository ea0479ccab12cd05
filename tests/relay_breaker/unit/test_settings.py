from __future__ import annotations

from typing import Any, cast

import pytest
from pydantic import ValidationError

from relay_breaker.relay import RelayConfig
from relay_breaker.settings import RelaySettings, prefixed_settings_config


def _build_settings(**overrides: object) -> RelaySettings:
    return RelaySettings(**cast(Any, overrides))


def test_relay_settings_defaults_match_relay_config() -> None:
    config = _build_settings().relay_config()

    assert config == RelayConfig()


def test_relay_settings_read_prefixed_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("RELAY_FAILURE_THRESHOLD", "3")
    monkeypatch.setenv("relay_cool_down_period", "2.5")
    monkeypatch.setenv("RELAY_USE_EXPONENTIAL_BACKOFF", "true")
    monkeypatch.setenv("RELAY_LOG_LEVEL", " debug ")

    settings = RelaySettings()

    assert settings.failure_threshold == 3
    assert settings.cool_down_period == 2.5
    assert settings.use_exponential_backoff is True
    assert settings.log_level == "DEBUG"


def test_relay_settings_build_config_with_fallback() -> None:
    def _fallback(error: BaseException) -> str:
        return "fallback"

    settings = _build_settings(
        failure_threshold=2,
        execution_timeout=1.5,
        max_cooldown=60.0,
    )
    config = settings.relay_config(on_fallback=_fallback)

    assert config.failure_threshold == 2
    assert config.execution_timeout == 1.5
    assert config.max_cooldown == 60.0
    assert config.on_fallback is _fallback


def test_prefixed_settings_config_supports_custom_prefix(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    class _PaymentsRelaySettings(RelaySettings):
        model_config = prefixed_settings_config("PAYMENTS_RELAY_")

    monkeypatch.setenv("PAYMENTS_RELAY_FAILURE_THRESHOLD", "7")

    assert _PaymentsRelaySettings().failure_threshold == 7


def test_relay_settings_rejects_unknown_log_level() -> None:
    with pytest.raises(ValidationError):
        _build_settings(log_level="TRACE")


def test_relay_settings_rejects_non_positive_threshold() -> None:
    with pytest.raises(ValidationError):
        _build_settings(failure_threshold=0)


def test_relay_settings_rejects_negative_cooldowns() -> None:
    with pytest.raises(ValidationError):
        _build_settings(cool_down_period=-1)
    with pytest.raises(ValidationError):
        _build_settings(max_cooldown=-1)


def test_relay_settings_rejects_non_positive_execution_timeout() -> None:
    with pytest.raises(ValidationError):
        _build_settings(execution_timeout=0)
