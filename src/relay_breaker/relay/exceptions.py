"""Relay exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open.
  - A call abandoned because it outran the execution timeout.
  - A missing process-wide default relay.
"""


class RelayError(Exception):
    """Base exception for the relay package."""


class BreakerOpenError(RelayError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the relay rejecting the call.
        retry_after: Seconds until the half-open probe timer fires, or ``None``
            when no timer is pending.
    """

    def __init__(self, breaker_name: str, retry_after: float | None = None) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Relay rejecting the call.
            retry_after: Seconds until the next probe window opens.
        """
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__("Circuit is open. Call was not attempted.")


class ExecutionTimeoutError(RelayError, TimeoutError):
    """Raised when a protected call does not finish within the timeout.

    The underlying operation keeps running; only the relay stops waiting.
    """

    def __init__(self, breaker_name: str, timeout: float) -> None:
        self.breaker_name = breaker_name
        self.timeout = timeout
        super().__init__("Execution timed out")


class NoDefaultInstanceError(RelayError):
    """Raised when the process-wide default relay is read while unset."""

    def __init__(self) -> None:
        super().__init__(
            "No default Relay instance set. Use set_default() first or provide "
            "a Relay instance to the decorator."
        )


class FallbackNotFoundError(RelayError):
    """Raised when a named fallback method does not exist on the instance."""

    def __init__(self, method_name: str) -> None:
        self.method_name = method_name
        super().__init__(f"Fallback method '{method_name}' not found on instance.")
