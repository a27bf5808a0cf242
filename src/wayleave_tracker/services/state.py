"""Observable state cells shared between services and their callers."""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class StateCell(Generic[T]):
    """Holds one value and notifies subscribers whenever it changes.

    Only the owning service writes to a cell; callers read it with ``get`` and
    react to changes through ``subscribe``.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []

    def get(self) -> T:
        """Return the current value."""
        return self._value

    def set(self, value: T) -> None:
        """Replace the value and notify subscribers."""
        self._value = value
        for subscriber in list(self._subscribers):
            try:
                subscriber(value)
            except Exception:
                _logger.exception("State subscriber failed")

    def update(self, func: Callable[[T], T]) -> None:
        """Derive the next value from the current one."""
        self.set(func(self._value))

    def subscribe(self, subscriber: Callable[[T], None]) -> Callable[[], None]:
        """Register a change callback and return a function that removes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe


class ActivityCell(StateCell[bool]):
    """True while at least one operation started with ``begin`` is unfinished."""

    def __init__(self) -> None:
        super().__init__(False)
        self._in_flight = 0

    def begin(self) -> None:
        self._in_flight += 1
        if self._in_flight == 1:
            self.set(True)

    def end(self) -> None:
        self._in_flight = max(self._in_flight - 1, 0)
        if self._in_flight == 0:
            self.set(False)
