"""Process-wide default relay slot.

The slot lets decorators run without an explicit relay argument. It is plain
module state: the last ``set_default`` wins and nothing synchronizes access.
Tests that set it must call ``clear_default`` during teardown.
"""

from relay_breaker.relay.breaker import Relay
from relay_breaker.relay.exceptions import NoDefaultInstanceError

_default_relay: Relay | None = None


def set_default(relay: Relay) -> None:
    """Install ``relay`` as the process-wide default."""
    global _default_relay
    _default_relay = relay


def get_default() -> Relay:
    """Return the process-wide default relay.

    Raises:
        NoDefaultInstanceError: When no default has been set.
    """
    if _default_relay is None:
        raise NoDefaultInstanceError()
    return _default_relay


def clear_default() -> None:
    """Empty the default slot. Safe to call when already empty."""
    global _default_relay
    _default_relay = None
