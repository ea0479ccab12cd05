"""Observability hooks for relays."""

from __future__ import annotations

import logging
from typing import Protocol

from relay_breaker.logging import StructuredLogger, log_info, log_warning


class RelayListener(Protocol):
    """Listener protocol for relay events.

    Notes:
        Hooks are synchronous and run at the point of the triggering
        transition. ``on_half_open`` runs from the event loop timer callback.
    """

    def on_open(self, name: str, error: BaseException) -> None:
        """Handle the relay opening after ``error``."""

    def on_close(self, name: str) -> None:
        """Handle the relay closing after a successful probe."""

    def on_half_open(self, name: str) -> None:
        """Handle the cooldown expiring."""

    def on_success(self, name: str) -> None:
        """Handle a successful protected call."""

    def on_failure(self, name: str, error: BaseException) -> None:
        """Handle a failed protected call, timeouts included."""


class LoggingListener(RelayListener):
    """Listener that writes every relay event to a structured logger."""

    def __init__(self, *, logger: StructuredLogger | logging.Logger) -> None:
        """Create a listener bound to one logger.

        Args:
            logger: structlog or stdlib logger receiving the events.
        """
        self._logger = logger

    def on_open(self, name: str, error: BaseException) -> None:
        log_warning(
            self._logger,
            "relay_opened",
            relay=name,
            error_type=error.__class__.__name__,
            error=str(error),
        )

    def on_close(self, name: str) -> None:
        log_info(self._logger, "relay_closed", relay=name)

    def on_half_open(self, name: str) -> None:
        log_info(self._logger, "relay_half_open", relay=name)

    def on_success(self, name: str) -> None:
        log_info(self._logger, "relay_call_succeeded", relay=name)

    def on_failure(self, name: str, error: BaseException) -> None:
        log_warning(
            self._logger,
            "relay_call_failed",
            relay=name,
            error_type=error.__class__.__name__,
            error=str(error),
        )
