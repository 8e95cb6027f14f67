"""A set of ordered, hashable values such as acknowledged message ids."""

from __future__ import annotations

from typing import Generic, Hashable, TypeVar

T = TypeVar("T", bound=Hashable)


class BigSet(Generic[T]):
    """Tracks membership of values, typically large runs of message ids.

    The storage is a plain hash set. A range-based structure that keeps
    runs of consecutive values could replace it without changing the
    interface.
    """

    def __init__(self) -> None:
        self._values: set[T] = set()

    def add(self, value: T) -> None:
        """Add a value; adding one that is already present does nothing."""
        self._values.add(value)

    def remove(self, value: T) -> None:
        """Remove a value; removing one that is absent does nothing."""
        self._values.discard(value)

    def contains(self, value: T) -> bool:
        """Return True if the value is in the set."""
        return value in self._values

    def __contains__(self, value: object) -> bool:
        return value in self._values