"""Asyncio circuit breaker with timed half-open recovery.

Key behavior notes:
  - The cooldown is an event loop timer. When it fires the relay moves to
    ``HALF_OPEN``; the next attempt either closes it or opens it again.
  - Every open since the last close counts toward exponential backoff when
    ``use_exponential_backoff`` is enabled.
  - Timeouts abandon the operation instead of cancelling it. A late result is
    discarded.
  - Fallbacks apply uniformly to open rejections, timeouts and operation
    errors. A fallback registered for the exact callable wins over
    ``on_fallback``.
"""

from relay_breaker.relay.breaker import Relay, RelayConfig
from relay_breaker.relay.decorators import (
    fallback,
    fallback_class,
    relay_class,
    use_relay,
)
from relay_breaker.relay.defaults import clear_default, get_default, set_default
from relay_breaker.relay.exceptions import (
    BreakerOpenError,
    ExecutionTimeoutError,
    FallbackNotFoundError,
    NoDefaultInstanceError,
    RelayError,
)
from relay_breaker.relay.listeners import LoggingListener, RelayListener
from relay_breaker.relay.state import RelayMetrics, RelayState

__all__ = [
    "BreakerOpenError",
    "ExecutionTimeoutError",
    "FallbackNotFoundError",
    "LoggingListener",
    "NoDefaultInstanceError",
    "Relay",
    "RelayConfig",
    "RelayError",
    "RelayListener",
    "RelayMetrics",
    "RelayState",
    "clear_default",
    "fallback",
    "fallback_class",
    "get_default",
    "relay_class",
    "set_default",
    "use_relay",
]
