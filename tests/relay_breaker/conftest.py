from __future__ import annotations

from collections.abc import Iterator

import pytest

from relay_breaker.relay import Relay, RelayConfig, clear_default
from tests.relay_breaker.support.relay_fakes import (
    FakeLogger,
    FlakyOperation,
    RecordingListener,
)


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def recording_listener() -> RecordingListener:
    """Provide a fresh recording relay listener per test."""
    return RecordingListener()


@pytest.fixture
def flaky() -> FlakyOperation:
    """Provide an operation that fails until healed."""
    return FlakyOperation()


@pytest.fixture
def relay(recording_listener: RecordingListener) -> Iterator[Relay]:
    """Provide a two-failure relay with a short cooldown, cleaned up after use."""
    instance = Relay(
        RelayConfig(failure_threshold=2, cool_down_period=0.05),
        name="svc",
        listeners=[recording_listener],
    )
    yield instance
    instance.cleanup()


@pytest.fixture(autouse=True)
def _reset_default_relay() -> Iterator[None]:
    yield
    clear_default()
