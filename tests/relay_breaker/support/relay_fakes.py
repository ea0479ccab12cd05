from __future__ import annotations

import asyncio
from dataclasses import dataclass, field


class FakeLogger:
    """Capture structured logger events for assertions."""

    def __init__(self) -> None:
        self.events: list[str] = []
        self.calls: list[tuple[str, str, dict[str, object]]] = []

    def _record(self, level: str, event: str, **kwargs: object) -> None:
        self.events.append(event)
        self.calls.append((level, event, kwargs))

    def info(self, event: str, **kwargs: object) -> None:
        self._record("info", event, **kwargs)

    def warning(self, event: str, **kwargs: object) -> None:
        self._record("warning", event, **kwargs)

    def exception(self, event: str, **kwargs: object) -> None:
        self._record("exception", event, **kwargs)


@dataclass(slots=True)
class RecordingListener:
    """Relay listener storing ``(event, payload)`` tuples in arrival order."""

    events: list[tuple[str, object]] = field(default_factory=list)

    def on_open(self, name: str, error: BaseException) -> None:
        self.events.append(("open", (name, error.__class__.__name__)))

    def on_close(self, name: str) -> None:
        self.events.append(("close", name))

    def on_half_open(self, name: str) -> None:
        self.events.append(("half_open", name))

    def on_success(self, name: str) -> None:
        self.events.append(("success", name))

    def on_failure(self, name: str, error: BaseException) -> None:
        self.events.append(("failure", (name, error.__class__.__name__)))

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]


class ExplodingListener:
    """Relay listener raising from every hook."""

    def on_open(self, name: str, error: BaseException) -> None:
        raise RuntimeError("boom")

    def on_close(self, name: str) -> None:
        raise RuntimeError("boom")

    def on_half_open(self, name: str) -> None:
        raise RuntimeError("boom")

    def on_success(self, name: str) -> None:
        raise RuntimeError("boom")

    def on_failure(self, name: str, error: BaseException) -> None:
        raise RuntimeError("boom")


class FlakyOperation:
    """Async operation that fails until ``heal`` is called."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls = 0
        self.healthy = False
        self.error = RuntimeError("nope") if error is None else error

    def heal(self) -> None:
        self.healthy = True

    def break_again(self) -> None:
        self.healthy = False

    async def __call__(self, *args: object, **kwargs: object) -> str:
        self.calls += 1
        await asyncio.sleep(0)
        if not self.healthy:
            raise self.error
        return "ok"
