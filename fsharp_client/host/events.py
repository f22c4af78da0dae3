"""Subscription plumbing shared by every host surface."""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

from fsharp_client.utils.logger import logger

T = TypeVar("T")


class Disposable:
    """Runs a teardown callback at most once."""

    def __init__(self, on_dispose: Callable[[], None] | None = None) -> None:
        self._on_dispose = on_dispose

    @property
    def disposed(self) -> bool:
        return self._on_dispose is None

    def dispose(self) -> None:
        callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()

    @classmethod
    def from_many(cls, disposables: list[Disposable]) -> Disposable:
        """Dispose several subscriptions together, in order."""
        def _dispose_all() -> None:
            for item in disposables:
                item.dispose()

        return cls(_dispose_all)


class EventEmitter(Generic[T]):
    """Ordered listener list.

    Listeners run synchronously in subscription order. A failing listener is
    logged and does not stop the remaining ones.
    """

    def __init__(self, name: str = "event") -> None:
        self._name = name
        self._listeners: list[Callable[[T], None]] = []

    def event(self, listener: Callable[[T], None]) -> Disposable:
        """Subscribe ``listener``; dispose the result to unsubscribe."""
        self._listeners.append(listener)

        def _remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return Disposable(_remove)

    def fire(self, value: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Listener for {} raised", self._name)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
