"""Minimal observable value used to publish core state to callers."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")

LOGGER = logging.getLogger("recitekit.observable")


class Observable(Generic[T]):
    """Holds the latest value and notifies subscribers on every ``set``."""

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(value)
            except Exception:
                LOGGER.exception("Subscriber %r failed", callback)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe
