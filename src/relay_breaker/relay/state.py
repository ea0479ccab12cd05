"""Relay state primitives."""

from dataclasses import dataclass
from enum import StrEnum


class RelayState(StrEnum):
    """Relay state values."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class RelayMetrics:
    """Point-in-time view of cumulative relay counters.

    Attributes:
        state: Relay state when the snapshot was taken.
        successes: Successful calls over the relay lifetime.
        failures: Failed calls over the relay lifetime, timeouts included.
        timeouts: Calls abandoned because they outran the execution timeout.
        total: ``successes + failures``.
    """

    state: RelayState
    successes: int
    failures: int
    timeouts: int
    total: int
