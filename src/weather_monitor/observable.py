"""Minimal change-notification helper for stateful components."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

Listener = Callable[[T], None]


class Listeners(Generic[T]):
    """Ordered set of callbacks notified after every state change."""

    def __init__(self, logger: logging.Logger) -> None:
        self._listeners: list[Listener[T]] = []
        self._logger = logger

    def add(self, listener: Listener[T]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def notify(self, subject: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(subject)
            except Exception:
                # Listener failures never reach the producer.
                self._logger.exception("State listener %r raised", listener)

    def clear(self) -> None:
        self._listeners.clear()
