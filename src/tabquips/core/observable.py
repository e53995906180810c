"""Minimal publish/subscribe stream for delivered notifications."""

from __future__ import annotations

import logging
from typing import Callable, Generic, List, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
Observer = Callable[[T], None]


class Subscription:
    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._cancel()


class NotificationStream(Generic[T]):
    """Synchronous fan-out to subscribers.

    A failing observer is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._observers: List[Observer] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: Observer) -> Subscription:
        self._observers.append(observer)

        def _cancel() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return Subscription(_cancel)

    def emit(self, value: T) -> None:
        for observer in list(self._observers):
            try:
                observer(value)
            except Exception:
                LOGGER.exception("Notification observer failed")

    def clear(self) -> None:
        self._observers.clear()
