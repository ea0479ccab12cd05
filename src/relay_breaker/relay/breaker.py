"""Core relay implementation."""

import asyncio
import inspect
import sys
import threading
import time
from collections.abc import Awaitable, Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, ParamSpec, TypeVar

import structlog

from relay_breaker.logging import log_exception
from relay_breaker.relay.exceptions import BreakerOpenError, ExecutionTimeoutError
from relay_breaker.relay.listeners import RelayListener
from relay_breaker.relay.state import RelayMetrics, RelayState

T = TypeVar("T")
P = ParamSpec("P")

FallbackFunc = Callable[[BaseException], Any]

# Keeps 2 ** exponent well inside float range for long-lived relays.
_MAX_BACKOFF_EXPONENT = 64

_logger = structlog.get_logger(__name__)


def _epoch_seconds() -> float:
    return time.time()


async def settle(value: Any) -> Any:
    """Await ``value`` when it is awaitable, otherwise return it as is."""
    if inspect.isawaitable(value):
        return await value
    return value


def _is_method_member(obj: object, attr: str) -> bool:
    # Properties and other data descriptors are never evaluated.
    try:
        member = inspect.getattr_static(obj, attr)
    except AttributeError:
        return False
    return isinstance(member, (staticmethod, classmethod)) or inspect.isroutine(member)


class _StateGuard:
    """Serialize relay mutations when the interpreter runs without a GIL."""

    def __init__(self) -> None:
        is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
        self._gil_enabled = True if is_gil_enabled is None else bool(is_gil_enabled())
        self._thread_lock: threading.RLock | None = None
        if not self._gil_enabled:
            self._thread_lock = threading.RLock()

    @contextmanager
    def hold(self) -> Iterator[None]:
        if self._thread_lock is None:
            yield
            return
        with self._thread_lock:
            yield


@dataclass(slots=True, frozen=True)
class RelayConfig:
    """Relay configuration values.

    Attributes:
        failure_threshold: Consecutive failures required before opening.
        cool_down_period: Seconds to stay ``OPEN`` before probing.
        execution_timeout: Seconds a call may run before counting as a failure.
        use_exponential_backoff: Double the cooldown for each consecutive open.
        max_cooldown: Ceiling in seconds for the backoff-adjusted cooldown.
        on_fallback: Default fallback called with the error instead of
            raising. May return a value or an awaitable.
    """

    failure_threshold: int = 5
    cool_down_period: float = 30.0
    execution_timeout: float = 10.0
    use_exponential_backoff: bool = False
    max_cooldown: float = 600.0
    on_fallback: FallbackFunc | None = None

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.cool_down_period < 0:
            raise ValueError("cool_down_period must be >= 0")
        if self.execution_timeout <= 0:
            raise ValueError("execution_timeout must be > 0")
        if self.max_cooldown < 0:
            raise ValueError("max_cooldown must be >= 0")
        if self.on_fallback is not None and not callable(self.on_fallback):
            raise ValueError("on_fallback must be callable")

    def cooldown_for(self, open_count: int) -> float:
        """Return the cooldown in seconds for the ``open_count``-th open."""
        if not self.use_exponential_backoff:
            return self.cool_down_period
        exponent = min(max(open_count - 1, 0), _MAX_BACKOFF_EXPONENT)
        return min(self.cool_down_period * 2**exponent, self.max_cooldown)


class Relay:
    """Circuit breaker around async operations with timed half-open recovery."""

    def __init__(
        self,
        config: RelayConfig | None = None,
        *,
        name: str = "relay",
        listeners: Sequence[RelayListener] | None = None,
    ) -> None:
        """Build a relay in the ``CLOSED`` state.

        Args:
            config: Relay behavior configuration. Defaults to ``RelayConfig()``.
            name: Relay name used in errors and listener events.
            listeners: Optional listener hooks for relay events.
        """
        self.name = name
        self._config = RelayConfig() if config is None else config
        self._listeners: list[RelayListener] = (
            list(listeners) if listeners is not None else []
        )
        self._guard = _StateGuard()
        self._state = RelayState.CLOSED
        self._failure_count = 0
        self._consecutive_open_count = 0
        self._last_failure_time = 0.0
        self._successes = 0
        self._failures = 0
        self._timeouts = 0
        self._cooldown_timer: asyncio.TimerHandle | None = None
        self._fallbacks: dict[Callable[..., Any], Callable[..., Any]] = {}
        self._abandoned: set[asyncio.Future[Any]] = set()

    @property
    def config(self) -> RelayConfig:
        return self._config

    @property
    def state(self) -> RelayState:
        return self._state

    @property
    def last_failure_time(self) -> float:
        """Unix time of the last open transition, ``0.0`` if never opened."""
        return self._last_failure_time

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def consecutive_open_count(self) -> int:
        return self._consecutive_open_count

    def subscribe(self, listener: RelayListener) -> None:
        """Attach ``listener`` to future relay events."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: RelayListener) -> None:
        """Detach ``listener``; unknown listeners are ignored."""
        self._listeners = [
            subscribed for subscribed in self._listeners if subscribed is not listener
        ]

    async def run(
        self,
        operation: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke an async callable under relay protection.

        Args:
            operation: Async callable to execute.
            *args: Positional arguments forwarded to ``operation``.
            **kwargs: Keyword arguments forwarded to ``operation``.

        Returns:
            The result of ``operation``, or the result of the fallback that
            handled its failure.

        Raises:
            BreakerOpenError: When the relay is open and no fallback applies.
            ExecutionTimeoutError: When the call outruns ``execution_timeout``
                and no fallback applies.
            Exception: The original exception from ``operation`` when no
                fallback applies.

        Notes:
            ``relay=<name>`` is bound in structlog contextvars for the whole
            attempt, so log lines from the operation, fallbacks, listeners and
            the cooldown timer carry the relay name.
        """
        with structlog.contextvars.bound_contextvars(relay=self.name):
            return await self._attempt(operation, args, kwargs)

    exec = run

    async def _attempt(
        self,
        operation: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        if self._state == RelayState.OPEN:
            open_error = BreakerOpenError(self.name, retry_after=self._retry_after())
            handler = self._fallback_for(operation, args, kwargs)
            if handler is None:
                raise open_error
            return await settle(handler(open_error))

        try:
            result = await self._run_with_timeout(operation, args, kwargs)
        except Exception as exc:
            self._handle_failure(exc)
            handler = self._fallback_for(operation, args, kwargs)
            if handler is None:
                raise
            return await settle(handler(exc))

        self._handle_success()
        return result

    def register(self, primary: Any, fallback: Any) -> None:
        """Associate a fallback with one specific primary callable.

        Two callables are mapped directly. Two plain objects have every
        public method present on both paired by name; names found on only
        one side are skipped.

        Raises:
            TypeError: When only one of the arguments is callable.
        """
        if callable(primary) and callable(fallback):
            self._fallbacks[primary] = fallback
            return
        if callable(primary) or callable(fallback):
            raise TypeError("register() expects two callables or two objects")

        for attr in dir(primary):
            if attr.startswith("_"):
                continue
            paired = _is_method_member(primary, attr) and _is_method_member(
                fallback, attr
            )
            if not paired:
                continue
            self._fallbacks[getattr(primary, attr)] = getattr(fallback, attr)

    def cleanup(self) -> None:
        """Cancel any pending cooldown timer without touching state or counters."""
        with self._guard.hold():
            self._cancel_cooldown_timer()

    def get_metrics(self) -> RelayMetrics:
        """Return a snapshot of the cumulative counters."""
        with self._guard.hold():
            return RelayMetrics(
                state=self._state,
                successes=self._successes,
                failures=self._failures,
                timeouts=self._timeouts,
                total=self._successes + self._failures,
            )

    async def _run_with_timeout(
        self,
        operation: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        outcome = operation(*args, **kwargs)
        if not inspect.isawaitable(outcome):
            return outcome

        task = asyncio.ensure_future(outcome)
        try:
            done, _ = await asyncio.wait(
                {task}, timeout=self._config.execution_timeout
            )
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            return task.result()

        self._abandon(task)
        with self._guard.hold():
            self._timeouts += 1
        raise ExecutionTimeoutError(self.name, self._config.execution_timeout)

    def _abandon(self, task: asyncio.Future[Any]) -> None:
        # The late outcome is dropped, but the task must stay referenced
        # until it finishes.
        self._abandoned.add(task)
        task.add_done_callback(self._discard_abandoned)

    def _discard_abandoned(self, task: asyncio.Future[Any]) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        late_error = task.exception()
        _logger.debug(
            "relay_late_result_discarded",
            relay=self.name,
            error_type=None if late_error is None else late_error.__class__.__name__,
        )

    def _fallback_for(
        self,
        operation: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> FallbackFunc | None:
        try:
            registered = self._fallbacks.get(operation)
        except TypeError:
            registered = None

        if registered is not None:

            def _call_registered(error: BaseException) -> Any:
                return registered(error, *args, **kwargs)

            return _call_registered
        return self._config.on_fallback

    def _retry_after(self) -> float | None:
        timer = self._cooldown_timer
        if timer is None:
            return None
        return max(timer.when() - asyncio.get_running_loop().time(), 0.0)

    def _handle_success(self) -> None:
        with self._guard.hold():
            self._successes += 1
            self._failure_count = 0
            if self._state == RelayState.HALF_OPEN:
                self._close()
            self._emit("on_success")

    def _handle_failure(self, error: BaseException) -> None:
        with self._guard.hold():
            self._failures += 1
            self._failure_count += 1
            self._emit("on_failure", error)

            if self._state == RelayState.OPEN:
                return
            if (
                self._state == RelayState.HALF_OPEN
                or self._failure_count >= self._config.failure_threshold
            ):
                self._open(error)

    def _open(self, error: BaseException) -> None:
        self._consecutive_open_count += 1
        self._state = RelayState.OPEN
        self._last_failure_time = _epoch_seconds()
        self._emit("on_open", error)

        cooldown = self._config.cooldown_for(self._consecutive_open_count)
        self._cancel_cooldown_timer()
        loop = asyncio.get_running_loop()
        self._cooldown_timer = loop.call_later(cooldown, self._half_open)

    def _half_open(self) -> None:
        with self._guard.hold():
            self._cooldown_timer = None
            self._state = RelayState.HALF_OPEN
            self._failure_count = 0
            self._emit("on_half_open")

    def _close(self) -> None:
        self._state = RelayState.CLOSED
        self._consecutive_open_count = 0
        self._failure_count = 0
        self._cancel_cooldown_timer()
        self._emit("on_close")

    def _cancel_cooldown_timer(self) -> None:
        if self._cooldown_timer is not None:
            self._cooldown_timer.cancel()
            self._cooldown_timer = None

    def _emit(self, hook: str, *args: object) -> None:
        for listener in tuple(self._listeners):
            try:
                getattr(listener, hook)(self.name, *args)
            except Exception:
                log_exception(
                    _logger, "relay_listener_failed", relay=self.name, hook=hook
                )
