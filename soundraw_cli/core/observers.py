"""
A small synchronous observer registry.
"""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class ObserverRegistry(Generic[T]):
    """
    Holds callbacks and calls each of them synchronously on every change.

    New subscribers are called immediately with the current value.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._callbacks: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def __len__(self) -> int:
        return len(self._callbacks)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Registers ``callback`` and returns a function that unregisters it."""
        self._callbacks.append(callback)
        self._call(callback, self._value)

        def unsubscribe() -> None:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, value: T) -> None:
        self._value = value
        for callback in list(self._callbacks):
            self._call(callback, value)

    def clear(self) -> None:
        self._callbacks.clear()

    @staticmethod
    def _call(callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception:
            log.warning(f"Observer {callback!r} raised", exc_info=True)
