"""Decorators routing functions and classes through a relay.

Usage:
    relay = Relay(RelayConfig(failure_threshold=3))

    @use_relay(relay)
    class ApiClient:
        async def fetch(self, key: str) -> bytes: ...

    class Catalog:
        @fallback("cached_items")
        @use_relay(relay)
        async def items(self, page: int) -> list[str]: ...

        async def cached_items(self, error: Exception, page: int) -> list[str]: ...
"""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from relay_breaker.relay.breaker import Relay, settle
from relay_breaker.relay.defaults import get_default
from relay_breaker.relay.exceptions import FallbackNotFoundError

F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type)


def _is_wrappable_method(name: str, member: object) -> bool:
    if name.startswith("__") and name.endswith("__"):
        return False
    return inspect.iscoroutinefunction(member)


def _route_through(relay: Relay, func: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        return await relay.run(func, *args, **kwargs)

    return wrapper


def use_relay(relay: Relay | None = None) -> Callable[[Any], Any]:
    """Protect a function, or every coroutine method of a class, with a relay.

    The relay is resolved when the decorator is applied; without an explicit
    relay the process-wide default is used.

    Applied to a class, only coroutine functions defined directly on the class
    are wrapped. Synchronous methods keep their synchronous signature. Applied
    to a function, the function is always wrapped and becomes awaitable.

    Raises:
        NoDefaultInstanceError: When ``relay`` is omitted and no default is set.
    """
    relay_instance = relay if relay is not None else get_default()

    def decorator(target: Any) -> Any:
        if not inspect.isclass(target):
            return _route_through(relay_instance, target)

        for name, member in list(vars(target).items()):
            if _is_wrappable_method(name, member):
                setattr(target, name, _route_through(relay_instance, member))
        return target

    return decorator


def relay_class(relay: Relay) -> Callable[[C], C]:
    """Route every method defined on the class through ``relay``.

    Unlike ``use_relay`` on a class, synchronous methods are wrapped as well
    and become awaitable. Dunder methods, static methods, class methods and
    properties are left alone.
    """

    def decorator(cls: C) -> C:
        for name, member in list(vars(cls).items()):
            if name.startswith("__") and name.endswith("__"):
                continue
            if inspect.isfunction(member):
                setattr(cls, name, _route_through(relay, member))
        return cls

    return decorator


def fallback(target: str | Callable[..., Any]) -> Callable[[F], F]:
    """Answer failures of the decorated function with a fallback.

    Args:
        target: Name of a method on the same instance, called as
            ``method(error, *args, **kwargs)``, or a standalone callable called
            as ``target(error, *args, **kwargs)`` with the full argument list.

    The decorated function keeps its sync or async nature.

    Raises:
        FallbackNotFoundError: When ``target`` names a method the instance
            does not have.
    """

    def _call_fallback(
        error: Exception, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> Any:
        if not isinstance(target, str):
            return target(error, *args, **kwargs)
        method = getattr(args[0], target, None) if args else None
        if not callable(method):
            raise FallbackNotFoundError(target) from error
        return method(error, *args[1:], **kwargs)

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    return await func(*args, **kwargs)
                except Exception as error:
                    return await settle(_call_fallback(error, args, kwargs))

            return async_wrapper  # type: ignore[return-value]

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as error:
                return _call_fallback(error, args, kwargs)

        return sync_wrapper  # type: ignore[return-value]

    return decorator


def _with_fallback_class(
    name: str, method: Callable[..., Any], fallback_cls: type
) -> Callable[..., Any]:
    @wraps(method)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await method(self, *args, **kwargs)
        except Exception as error:
            fallback_method = getattr(fallback_cls(), name, None)
            if not callable(fallback_method):
                raise
            return await settle(fallback_method(error, *args, **kwargs))

    return wrapper


def fallback_class(fallback_cls: type) -> Callable[[C], C]:
    """Route failures of every coroutine method to a same-named fallback method.

    A fresh ``fallback_cls()`` instance answers each failure; its method is
    called as ``method(error, *args, **kwargs)``. When the fallback class has
    no such method the original error is re-raised.
    """

    def decorator(cls: C) -> C:
        for name, member in list(vars(cls).items()):
            if _is_wrappable_method(name, member):
                setattr(cls, name, _with_fallback_class(name, member, fallback_cls))
        return cls

    return decorator
